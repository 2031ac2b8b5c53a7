"""Per-connection collaborator handle passed to every submitter call."""

from __future__ import annotations

from dataclasses import dataclass

from ..gateways.bundler import BundlerGateway


@dataclass(slots=True, frozen=True)
class ConnectionContext:
    """Everything a write needs to reach the chain for one connected account."""

    bundler: BundlerGateway
    wallet_address: str
    smart_account_address: str
    contract_address: str
    chain_id: int
