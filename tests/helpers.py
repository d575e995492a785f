# tests/helpers.py

from __future__ import annotations

# Lowest cost bcrypt accepts; keeps the suite fast
TEST_ROUNDS = 4

ADMIN = ("admin", "admin@example.com", "adminpass")
