"""Identifier case conversion shared by every surface.

All surfaces derive external names from the Python operation name, so the
conversions here are the single source of truth for:

  get_user      -> get-user   (CLI subcommand, HTTP path stem)
  get_user      -> getUser    (GraphQL field, OpenRPC method, Cap'n Proto)
  get_user      -> GetUser    (IDL message and rpc names)
  UserService   -> user_service (proto package, Thrift namespace)
"""

from __future__ import annotations

import re


def to_snake(name: str) -> str:
    """Convert camelCase, PascalCase or kebab-case to snake_case."""
    s1 = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    s2 = re.sub(r"([a-z\d])([A-Z])", r"\1_\2", s1)
    return re.sub(r"[-\s]+", "_", s2).lower()


def _words(name: str) -> list[str]:
    return [w for w in to_snake(name).split("_") if w]


def to_kebab(name: str) -> str:
    return "-".join(_words(name))


def to_pascal(name: str) -> str:
    return "".join(w[:1].upper() + w[1:] for w in _words(name))


def to_camel(name: str) -> str:
    pascal = to_pascal(name)
    return pascal[:1].lower() + pascal[1:]


def to_title(name: str) -> str:
    """``get_user`` -> ``Get User`` (Markdown section headings)."""
    return " ".join(w.capitalize() for w in _words(name))


def pluralize(word: str) -> str:
    """Append ``s`` unless the stem already ends with one."""
    if not word or word.endswith("s"):
        return word
    return word + "s"
