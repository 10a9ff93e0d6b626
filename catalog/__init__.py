"""catalog/ -- Drug catalog persistence for Pharmabolt.

Layer rule: catalog/ imports only core/, stdlib and third-party libraries.
It does NOT import from api/ or auth/.
"""
