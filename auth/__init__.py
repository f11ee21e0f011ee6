"""auth/ -- Authentication for the News API.

tokens.py holds the TokenService (JWT issue/verify) and bcrypt password
helpers; dependencies.py holds the FastAPI auth gate.

Layer rule: auth/ imports from core/ and store/ plus third-party libraries.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
