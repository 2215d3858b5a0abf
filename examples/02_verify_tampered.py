#!/usr/bin/env python3
"""Example: Detecting a Tampered Copy

Issues a credential, then serves an edited copy under a second CID. The
edited copy hashes to a different digest, which the registry has never
seen, so verification reports it as not found. A re-ordered but otherwise
identical copy still verifies.

Usage:
    python examples/02_verify_tampered.py

Requirements:
    pip install credential-anchor
"""
from __future__ import annotations

import asyncio
import json

import httpx

from credential_anchor import AnchorConfig, format_status, open_workflow

ISSUER = "0x90f8bf6a479f320ead074411a4b0e7944ea8c9c1"

_pins: dict[str, bytes] = {}


def _handler(request: httpx.Request) -> httpx.Response:
    if request.method == "POST":
        _pins["bafyOriginal"] = json.dumps(json.loads(request.content)["pinataContent"]).encode()
        return httpx.Response(200, json={"IpfsHash": "bafyOriginal"})
    cid = request.url.path.rsplit("/", 1)[-1]
    if cid not in _pins:
        return httpx.Response(404)
    return httpx.Response(200, content=_pins[cid])


async def main() -> None:
    config = AnchorConfig(
        store_endpoint="https://pinning.local/pinJSONToIPFS",
        store_auth_token="demo-token",
        gateways=("https://gateway.local/ipfs/{cid}",),
    )
    client = httpx.AsyncClient(transport=httpx.MockTransport(_handler))

    async with open_workflow(config, signer=ISSUER, http_client=client) as workflow:
        session = await workflow.issue({"name": "Grace Hopper", "degree": "PhD Math"}, issuer=ISSUER)
        original = session.document.to_dict()
        print(f"Issued {session.digest}")

        # Same values, different key order and whitespace
        reordered = dict(reversed(list(original.items())))
        _pins["bafyReordered"] = json.dumps(reordered, indent=4).encode()

        # One value changed
        _pins["bafyTampered"] = json.dumps({**original, "degree": "PhD Physics"}).encode()

        for cid in ("bafyOriginal", "bafyReordered", "bafyTampered"):
            result = await workflow.verify(cid)
            print(f"  {cid:<14} {result.status.value:<10} {format_status(result)}")

    await client.aclose()


if __name__ == "__main__":
    asyncio.run(main())
