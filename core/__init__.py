"""core/ -- Kernel of the registry core: configuration, errors, domain models.

Layer rule: core/ imports only stdlib + third-party libraries.
store/ and auth/ import from core/, never the other way around.
"""
