"""Deterministic identifiers derived from tuples of external ids."""
import json
import uuid

# Fixed namespace; changing it re-keys every stored claim
SCHOLAR_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "https://scholar-app/rewards")


def deterministic_uuid(*parts: str) -> uuid.UUID:
    """
    Name-based UUIDv5 for an ordered tuple of strings.

    The parts are JSON-encoded before hashing, so ("a:b", "c") and
    ("a", "b:c") never produce the same name.
    """
    name = json.dumps([str(p) for p in parts], separators=(",", ":"), ensure_ascii=False)
    return uuid.uuid5(SCHOLAR_NAMESPACE, name)


def claim_key(student_id: str, claim_type: str, reference_id: str) -> str:
    """Idempotency key for a reward claim."""
    return str(deterministic_uuid("claim", student_id, claim_type, reference_id))
