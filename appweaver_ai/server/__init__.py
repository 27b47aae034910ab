"""
AppWeaver-AI Server Package.

This package contains the web server implementation for the AppWeaver-AI platform.

Subpackages:
    api: FastAPI route definitions and endpoint logic.
    core: Settings and server constants.
    exception_handlers: Error-to-response mapping.
    services: Service container wiring and request dependencies.
"""
