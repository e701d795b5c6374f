import re
import secrets
import string

LEGACY_ID_ALPHABET = string.ascii_uppercase + string.digits


def only_digits(value: str | None) -> str:
    return re.sub(r"\D", "", value or "")


def normalize_cpf(value: str | None) -> str:
    return only_digits(value)


def validate_cpf(value: str | None) -> bool:
    cpf = only_digits(value)
    if len(cpf) != 11 or cpf == cpf[0] * 11:
        return False

    for size in (9, 10):
        total = sum(int(cpf[i]) * (size + 1 - i) for i in range(size))
        digit = (total * 10) % 11
        if digit == 10:
            digit = 0
        if digit != int(cpf[size]):
            return False
    return True


def format_cpf(value: str | None) -> str:
    cpf = only_digits(value)
    if len(cpf) != 11:
        return value or ""
    return f"{cpf[:3]}.{cpf[3:6]}.{cpf[6:9]}-{cpf[9:]}"


def generate_legacy_id(prefix: str) -> str:
    suffix = "".join(secrets.choice(LEGACY_ID_ALPHABET) for _ in range(8))
    return f"{prefix}{suffix}"
