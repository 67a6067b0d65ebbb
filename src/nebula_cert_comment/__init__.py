"""
nebula_cert_comment — keeps Nebula certificate annotations up to date.

Scans text files for embedded Nebula certificates (v1 and v2 PEM blocks)
and rewrites the comment line above each block into a summary of the
certificate: name, groups, expiry, fingerprint and so on.

Built on the Railway-Oriented Programming (ROP) framework for
explicit, composable, functional error handling.
"""

__version__ = "0.1.0"
