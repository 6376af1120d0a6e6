import bcrypt

BCRYPT_ROUNDS = 10


def hash_password(plaintext: str) -> str:
    return bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("ascii")


def verify_password(digest: str, plaintext: str) -> bool:
    # A corrupt digest reads the same as a wrong password.
    try:
        return bcrypt.checkpw(plaintext.encode("utf-8"), digest.encode("ascii"))
    except (ValueError, TypeError):
        return False
