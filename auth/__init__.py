"""auth/ -- Identity package for TenantNotes: token codec, credential
verification, tenant/user storage and provisioning.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/ or notes/.
api/ imports from auth/, not the other way around.
"""
