"""
Gemini Proxy Application
========================

Modules:
    - config.py      : Settings loaded from the environment
    - models.py      : Request, response and result models
    - proxy/         : ProxyHandler and its HTTP route
    - main.py        : FastAPI application factory
"""
