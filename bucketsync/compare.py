from __future__ import annotations

from collections.abc import Iterable

from bucketsync.models import ComparisonRecord, LocalEntry, RemoteEntry


def join_key(key_prefix: str, relative_key: str) -> str:
    prefix = key_prefix.strip("/")
    if not prefix:
        return relative_key
    return f"{prefix}/{relative_key}"


def is_root_marker(key: str, key_prefix: str) -> bool:
    """True for the directory-marker object sitting at the prefix root."""
    return key.rstrip("/") == key_prefix.strip("/")


def compare_bucket(
    remote_entries: Iterable[RemoteEntry],
    local_entries: Iterable[LocalEntry],
    *,
    key_prefix: str = "",
) -> dict[str, ComparisonRecord]:
    """Merge a complete bucket listing with the local inventory.

    The result holds one record per key found on either side, local keys first
    in inventory order, then keys only present remotely in listing order.
    """
    remote_by_key = {entry.key: entry for entry in remote_entries}
    compared: dict[str, ComparisonRecord] = {}

    # Must drain fully before the remote-only pass.
    for local in local_entries:
        key = join_key(key_prefix, local.key)
        compared[key] = ComparisonRecord(key=key, local=local, remote=remote_by_key.get(key))

    for key, remote in remote_by_key.items():
        if key in compared or is_root_marker(key, key_prefix):
            continue
        compared[key] = ComparisonRecord(key=key, remote=remote)

    return compared
