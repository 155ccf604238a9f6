"""repofs test suite.

Test organization:
- unit/: fast tests with no network access. Cloud SDKs are replaced by
  moto (S3) or unittest.mock fakes (GCS, Azure); the generic object-store
  and localization logic runs against an in-memory backend (helpers.py).
"""
