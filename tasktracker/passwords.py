import bcrypt

DEFAULT_ROUNDS = 12
MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 24

# bcrypt only looks at the first 72 bytes and newer releases refuse longer input
_BCRYPT_MAX_BYTES = 72


def password_length_error(password: str):
    """Return a message if the password length is out of bounds, else None"""
    if password is None or len(password) < MIN_PASSWORD_LENGTH:
        return (
            "Chosen password is too short. Password should be at least "
            f"{MIN_PASSWORD_LENGTH} characters long"
        )
    if len(password) > MAX_PASSWORD_LENGTH:
        return (
            "Chosen password is too long. Password should be at most "
            f"{MAX_PASSWORD_LENGTH} characters long"
        )
    if len(password.encode("utf-8")) > _BCRYPT_MAX_BYTES:
        return (
            "Chosen password is too long. Password should be at most "
            f"{_BCRYPT_MAX_BYTES} bytes when UTF-8 encoded"
        )
    return None


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    if not password or not hashed:
        return False
    encoded = password.encode("utf-8")
    if len(encoded) > _BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False
