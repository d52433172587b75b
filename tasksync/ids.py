"""ID generation utilities."""

import secrets

from nanoid import generate

ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
ID_LENGTH = 12


def gen_id(prefix: str) -> str:
    return f"{prefix}{generate(ALPHABET, ID_LENGTH)}"


def user_id() -> str:
    return gen_id("us_")


def task_id() -> str:
    return gen_id("tk_")


def location_id() -> str:
    return gen_id("lo_")


def action_id() -> str:
    return gen_id("ac_")


def response_id() -> str:
    return gen_id("rs_")


def action_response_id() -> str:
    return gen_id("ar_")


def ledger_id() -> str:
    return gen_id("le_")


def api_key() -> str:
    return f"sk_{secrets.token_urlsafe(24)}"
