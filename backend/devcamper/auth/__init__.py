"""
DevCamper Backend — Authentication & Authorization
====================================================

    security.py      password hashes, access tokens, reset tokens
    dependencies.py  the per-request gate (token → principal → role check)
    policy.py        owner-or-admin and one-bootcamp-per-publisher rules
"""
