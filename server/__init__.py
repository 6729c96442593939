"""Mangatrack core package.

Modules:
- app: FastAPI app factory and Uvicorn runner
- config: INI parsing, environment overrides and config object
- errors: error taxonomy and HTTP rendering
- logging_config: file + Rich console logging
- path_utils: username to record-file mapping
"""
