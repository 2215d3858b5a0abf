#!/usr/bin/env python3
"""Example: Quickstart

Issues a credential, verifies it by CID, then revokes it. The pinning
service and gateways are simulated in memory with ``httpx.MockTransport``
and the registry is the local JSON ledger, so nothing leaves the process.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install credential-anchor
"""
from __future__ import annotations

import asyncio
import hashlib
import json

import httpx

import credential_anchor
from credential_anchor import AnchorConfig, format_status, open_workflow

ISSUER = "0x90f8bf6a479f320ead074411a4b0e7944ea8c9c1"

_pins: dict[str, bytes] = {}


def _handler(request: httpx.Request) -> httpx.Response:
    if request.method == "POST":
        content = json.dumps(json.loads(request.content)["pinataContent"]).encode("utf-8")
        cid = "bafy" + hashlib.sha256(content).hexdigest()[:32]
        _pins[cid] = content
        return httpx.Response(200, json={"IpfsHash": cid})
    cid = request.url.path.rsplit("/", 1)[-1]
    if cid not in _pins:
        return httpx.Response(404)
    return httpx.Response(200, content=_pins[cid])


async def main() -> None:
    print(f"credential-anchor version: {credential_anchor.__version__}")

    config = AnchorConfig(
        store_endpoint="https://pinning.local/pinJSONToIPFS",
        store_auth_token="demo-token",
        gateways=("https://gateway.local/ipfs/{cid}",),
    )
    client = httpx.AsyncClient(transport=httpx.MockTransport(_handler))

    async with open_workflow(config, signer=ISSUER, http_client=client) as workflow:
        # Step 1: Issue a credential
        session = await workflow.issue(
            {"name": "Ada Lovelace", "degree": "BSc CS", "year": "2025"},
            issuer=ISSUER,
        )
        print(format_status(session))
        print(f"  digest: {session.digest}")
        print(f"  cid:    {session.cid}")

        # Step 2: Verify it from the CID alone
        result = await workflow.verify(session.cid)
        print(format_status(result))

        # Step 3: Revoke it and verify again
        revoked = await workflow.revoke(session)
        print(format_status(revoked))
        print(format_status(await workflow.verify(session.cid)))

    await client.aclose()
    print("\nQuickstart complete.")


if __name__ == "__main__":
    asyncio.run(main())
