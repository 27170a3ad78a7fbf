"""Agent metadata decoding: turns an ERC-8004 tokenURI into a document.

Registry tokens carry their capability document inline as a data URI:

    data:application/json;base64,eyJ0eXBlIjoi...

Decoding flow:
    1. Check the data URI prefix.
    2. Base64-decode and parse the payload as JSON.
    3. Validate against AGENT_METADATA_SCHEMA (Draft 7).

Any failure raises AgentMetadataMalformedError for that token only; the
registry resolver skips it and carries on with the rest.
"""

from __future__ import annotations

import base64
import binascii
import json

from jsonschema import Draft7Validator

from agent_marketplace.domain.exceptions import AgentMetadataMalformedError

DATA_URI_PREFIX = "data:application/json;base64,"

AGENT_METADATA_SCHEMA: dict = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["name", "description", "x402Support", "active", "merchantId"],
    "properties": {
        "type": {"type": "string"},
        "name": {"type": "string", "minLength": 1},
        "description": {"type": "string"},
        "x402Support": {"type": "boolean"},
        "active": {"type": "boolean"},
        "merchantId": {"type": "string", "minLength": 1},
        "endpoint": {"type": ["string", "null"]},
        "priceUsdt": {"type": ["string", "null"], "pattern": r"^\d+(\.\d+)?$"},
    },
}

_validator = Draft7Validator(AGENT_METADATA_SCHEMA)


def decode_token_uri(token_id: int, token_uri: str) -> dict:
    """Decode and validate one token's metadata document.

    Raises:
        AgentMetadataMalformedError: If the URI is not a base64 JSON data URI
            or the document does not match the metadata schema.
    """
    if not token_uri.startswith(DATA_URI_PREFIX):
        raise AgentMetadataMalformedError(token_id, "tokenURI is not a base64 JSON data URI")

    encoded = token_uri[len(DATA_URI_PREFIX):]
    try:
        document = json.loads(base64.b64decode(encoded, validate=True))
    except (binascii.Error, ValueError) as exc:
        raise AgentMetadataMalformedError(token_id, f"undecodable payload: {exc}") from exc

    errors = sorted(_validator.iter_errors(document), key=lambda e: list(e.path))
    if errors:
        first = errors[0]
        where = ".".join(str(p) for p in first.path) or "<root>"
        raise AgentMetadataMalformedError(token_id, f"{where}: {first.message}")

    return document


def encode_token_uri(document: dict) -> str:
    """Encode a metadata document as a data URI (used when minting and in tests)."""
    payload = base64.b64encode(json.dumps(document).encode("utf-8")).decode("ascii")
    return f"{DATA_URI_PREFIX}{payload}"
