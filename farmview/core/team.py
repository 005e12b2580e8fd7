"""Team roster: member validation and local JSON persistence."""

from __future__ import annotations

import hashlib
import hmac
import json
import os
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger

from farmview.core.models import TeamMember
from farmview.errors import ValidationError

ROLES: tuple[tuple[str, str], ...] = (
    ("pilot", "Pilot"),
    ("agronomist", "Agronomist"),
    ("supervisor", "Supervisor"),
    ("technician", "Technician"),
    ("operator", "Operator"),
    ("manager", "Manager"),
    ("consultant", "Consultant"),
    ("other", "Other"),
)
_ROLE_VALUES = tuple(value for value, _ in ROLES)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PBKDF2_ROUNDS = 120_000


def role_label(value: str) -> str:
    for role, label in ROLES:
        if role == value:
            return label
    return value


def hash_password(password: str, salt: bytes | None = None) -> str:
    """Return ``pbkdf2_sha256$<rounds>$<salt hex>$<digest hex>``."""
    salt = salt if salt is not None else os.urandom(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, _PBKDF2_ROUNDS)
    return f"pbkdf2_sha256${_PBKDF2_ROUNDS}${salt.hex()}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algo, rounds, salt_hex, digest_hex = encoded.split("$")
    except ValueError:
        return False
    if algo != "pbkdf2_sha256":
        return False
    try:
        digest = hashlib.pbkdf2_hmac(
            "sha256", password.encode("utf-8"), bytes.fromhex(salt_hex), int(rounds)
        )
    except (ValueError, OverflowError):
        return False
    return hmac.compare_digest(digest.hex(), digest_hex)


def validate_member(form: dict[str, Any], require_password: bool = True) -> dict[str, str]:
    """Validate the team member form.

    Parameters
    ----------
    form : dict[str, Any]
        Raw values keyed by ``full_name``, ``email``, ``phone``, ``password``
        and ``role``.
    require_password : bool, optional
        False when editing, where a blank password keeps the stored hash.

    Returns
    -------
    dict[str, str]
        Cleaned values. ``password`` is absent when left blank on edit.

    Raises
    ------
    ValidationError
        Raised for the first invalid field.
    """
    full_name = str(form.get("full_name") or "").strip()
    if len(full_name) < 2:
        raise ValidationError("full_name", "must have at least 2 characters")

    email = str(form.get("email") or "").strip()
    if not _EMAIL_RE.match(email):
        raise ValidationError("email", "invalid e-mail address")

    phone = str(form.get("phone") or "").strip()
    if len(phone) < 10:
        raise ValidationError("phone", "must have at least 10 characters")

    role = str(form.get("role") or "").strip()
    if role not in _ROLE_VALUES:
        raise ValidationError("role", f"unknown role: {role!r}")

    cleaned = {"full_name": full_name, "email": email, "phone": phone, "role": role}
    password = str(form.get("password") or "")
    if password or require_password:
        if len(password) < 6:
            raise ValidationError("password", "must have at least 6 characters")
        cleaned["password"] = password
    return cleaned


class TeamRoster:
    """Team members stored as a JSON list next to the app config.

    Parameters
    ----------
    path : str | Path
        Roster file. Missing files start an empty roster.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.members: list[TeamMember] = []
        self.load()

    def load(self) -> None:
        if not self.path.exists():
            self.members = []
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            logger.error(f"Unreadable team roster {self.path}: {exc}")
            self.members = []
            return
        self.members = [TeamMember.from_dict(item) for item in data]
        logger.debug(f"Loaded {len(self.members)} team members")

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [member.to_dict() for member in self.members]
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def get(self, member_id: str) -> TeamMember | None:
        for member in self.members:
            if member.id == member_id:
                return member
        return None

    def add(self, form: dict[str, Any]) -> TeamMember:
        """Validate and append a member; e-mails must be unique."""
        cleaned = validate_member(form)
        self._check_unique_email(cleaned["email"], None)
        member = TeamMember(
            id=str(uuid.uuid4()),
            full_name=cleaned["full_name"],
            email=cleaned["email"],
            phone=cleaned["phone"],
            role=cleaned["role"],
            password_hash=hash_password(cleaned["password"]),
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        self.members.insert(0, member)
        self.save()
        logger.info(f"Team member added: {member.full_name}")
        return member

    def update(self, member_id: str, form: dict[str, Any]) -> TeamMember:
        member = self.get(member_id)
        if member is None:
            raise KeyError(member_id)
        cleaned = validate_member(form, require_password=False)
        self._check_unique_email(cleaned["email"], member_id)
        member.full_name = cleaned["full_name"]
        member.email = cleaned["email"]
        member.phone = cleaned["phone"]
        member.role = cleaned["role"]
        if "password" in cleaned:
            member.password_hash = hash_password(cleaned["password"])
        self.save()
        logger.info(f"Team member updated: {member.full_name}")
        return member

    def delete(self, member_id: str) -> bool:
        before = len(self.members)
        self.members = [m for m in self.members if m.id != member_id]
        if len(self.members) == before:
            return False
        self.save()
        logger.info(f"Team member removed: {member_id}")
        return True

    def _check_unique_email(self, email: str, member_id: str | None) -> None:
        for member in self.members:
            if member.email.lower() == email.lower() and member.id != member_id:
                raise ValidationError("email", "already registered")
