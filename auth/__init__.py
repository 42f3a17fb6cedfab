"""auth/ -- Authentication core for locallogin.

Password hashing, the credential store, the authenticator, registration and
the session identity codec live here.

Layer rule: auth/ imports only stdlib + third-party libraries, plus core/.
It does NOT import from api/ or web/. api/ and web/ import from auth/, not
the other way around.
"""
