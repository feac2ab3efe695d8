"""
Marks `fieldsign.web` as a proper Python package so the ASGI app can be
imported as `fieldsign.web.main:app` by uvicorn and by the test client.
"""
