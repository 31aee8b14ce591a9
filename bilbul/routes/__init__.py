"""
FastAPI routers for all API endpoints.

- splits: the bill-splitting session workflow
- auth: Supabase Auth sign-in, sign-up, OAuth and identity
- health: public liveness check
"""
