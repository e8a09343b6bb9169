"""Keyring checks: file presence, key listing and expiration."""

from __future__ import annotations

import re
import stat
from collections.abc import Iterator
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel

from cudadiag.checks.base import CheckContext, Entry
from cudadiag.core.errors import MissingResource
from cudadiag.core.result import CheckResult

_PUB_KEY_ID = re.compile(r"^pub\s+\S+/([0-9A-Fa-f]{8,40})")


class KeyRecord(BaseModel):
    """One `pub` record of `gpg --with-colons` output."""

    key_id: str
    expires: int | None = None
    raw_expiry: str = ""

    @property
    def never_expires(self) -> bool:
        return self.raw_expiry == ""


def _parse_timestamp(raw: str) -> int | None:
    """gpg prints epochs, or ISO 8601 basic format in some modes."""
    if raw.isdigit():
        return int(raw)
    try:
        parsed = datetime.strptime(raw, "%Y%m%dT%H%M%S")
    except ValueError:
        return None
    return int(parsed.replace(tzinfo=timezone.utc).timestamp())


def parse_key_records(colons: str) -> list[KeyRecord]:
    """Extract public key records from --with-colons output.

    Field layout: type:validity:length:algo:keyid:created:expires:...
    """
    records = []
    for line in colons.splitlines():
        fields = line.split(":")
        if fields[0] != "pub":
            continue
        fields += [""] * (7 - len(fields))
        raw = fields[6].strip()
        records.append(KeyRecord(
            key_id=fields[4],
            expires=_parse_timestamp(raw) if raw else None,
            raw_expiry=raw,
        ))
    return records


def format_epoch(epoch: int) -> str:
    """Local time like `date -d @epoch`, or Unknown if unrepresentable."""
    try:
        return datetime.fromtimestamp(epoch).strftime("%Y-%m-%d %H:%M:%S")
    except (OverflowError, OSError, ValueError):
        return "Unknown"


def expiry_result(record: KeyRecord, now: datetime) -> CheckResult:
    """Judge one key: PASS if it never expires or expires after now."""
    key = f"Key {record.key_id}"
    if record.never_expires:
        return CheckResult.passed(f"{key}: Never expires")
    if record.expires is None:
        return CheckResult.failed(f"{key}: EXPIRED on Unknown")

    when = format_epoch(record.expires)
    if record.expires > now.timestamp():
        return CheckResult.passed(f"{key}: Expires on {when} (still valid)")
    return CheckResult.failed(f"{key}: EXPIRED on {when}")


def human_size(size: int) -> str:
    """Size the way `ls -h` prints it."""
    value = float(size)
    for unit in ("", "K", "M", "G"):
        if value < 1024 or unit == "G":
            if unit == "":
                return str(size)
            return f"{value:.1f}{unit}" if value < 10 else f"{value:.0f}{unit}"
        value /= 1024
    return str(size)


def describe_file(path: Path) -> str:
    info = path.stat()
    modified = datetime.fromtimestamp(info.st_mtime).strftime("%Y-%m-%d %H:%M")
    return (
        f"{stat.filemode(info.st_mode)} {human_size(info.st_size)} "
        f"({info.st_size} bytes) {modified} {path}"
    )


def find_named(directory: Path, terms: list[str]) -> list[Path]:
    """Files or directories below directory whose name contains
    any of terms, case-insensitively."""
    if not directory.is_dir():
        return []
    lowered = [t.lower() for t in terms]
    return sorted(
        p for p in directory.rglob("*")
        if any(t in p.name.lower() for t in lowered)
    )


def keyring_file(ctx: CheckContext) -> Iterator[Entry]:
    path = ctx.config.keyring.path
    if path.is_file():
        yield CheckResult.passed(
            f"Keyring file exists: {path}", describe_file(path)
        )
        return

    yield CheckResult.failed(
        f"Keyring file NOT found: {path}",
        "Looking for alternative locations...",
    )
    matches = find_named(path.parent, ctx.config.keyring.search_terms)
    if matches:
        yield from (f"    {m}" for m in matches)
    else:
        yield "    No CUDA/NVIDIA keyrings found"


def key_content(ctx: CheckContext) -> Iterator[Entry]:
    path = ctx.config.keyring.path
    if not path.is_file():
        yield CheckResult.failed(
            "Cannot check key content - keyring file missing"
        )
        return

    yield "Listing keys in keyring..."
    try:
        listing = ctx.tools.list_keys(path)
    except MissingResource as e:
        yield CheckResult.failed(f"Cannot list keys - {e.message}")
        return
    yield from listing.text.splitlines()
    yield ""

    expected = ctx.config.keyring.expected_key_id
    if expected.upper() in listing.stdout.upper():
        yield CheckResult.passed(f"Expected key ID found: {expected}")
        return

    pub_lines = [
        line.strip() for line in listing.stdout.splitlines()
        if line.startswith("pub")
    ]
    found = [
        m.group(1).upper()
        for m in map(_PUB_KEY_ID.match, pub_lines) if m
    ]
    details = ["Available key IDs:"]
    if found:
        details.append(", ".join(found))
    details.extend(pub_lines or ["No keys found"])
    yield CheckResult.failed(f"Expected key ID NOT found: {expected}", *details)


def key_expiration(ctx: CheckContext) -> Iterator[Entry]:
    path = ctx.config.keyring.path
    if not path.is_file():
        yield CheckResult.failed(
            "Cannot check expiration - keyring file missing"
        )
        return

    yield "Checking key expiration dates..."
    try:
        listing = ctx.tools.list_keys_colons(path)
    except MissingResource as e:
        yield CheckResult.failed(f"Cannot list keys - {e.message}")
        return

    records = parse_key_records(listing.stdout)
    if not records:
        yield CheckResult.warned("No public keys found in keyring")
        return

    now = ctx.now()
    for record in records:
        yield expiry_result(record, now)
