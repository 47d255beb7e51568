"""Club Manager package.

This package is organized by feature modules (members, contributions, caisse, ...)
with a thin Flask JSON controller layer over service/repository layers.
"""
