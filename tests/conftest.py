"""Test environment: must be applied before any app module reads settings."""

import os

os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-jwt-secret-with-enough-entropy-0123456789"
os.environ["CSRF_SECRET"] = "test-csrf-secret-with-enough-entropy-0123456789"
os.environ["BCRYPT_ROUNDS"] = "10"
os.environ["FRONTEND_URL"] = "https://news.example.test"
os.environ["CORS_ORIGIN"] = "https://news.example.test"
for _name in ("MAILGUN_API_KEY", "MAILGUN_DOMAIN", "MAILGUN_FROM_EMAIL"):
    os.environ.pop(_name, None)
