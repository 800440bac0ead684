"""
Password hashing with bcrypt.

``bcrypt.checkpw`` compares in constant time. Unknown logins are checked
against DUMMY_HASH so a miss costs the same as a wrong password.
"""

import bcrypt


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


DUMMY_HASH = hash_password("tenantgate-dummy-secret")
