"""
Certificate Minter — Issues the NFT credential for a passed test.

MintingServiceClient hands the metadata to an external minting service over
HTTP. DemoMinter (used when MINTER_URL is empty) issues a fresh keypair
address as the mint, as the devnet demo deployment does.
"""
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Protocol

import httpx
from solders.keypair import Keypair

from skillchain.config import Settings, get_settings
from skillchain.exceptions import MintingError
from skillchain.utils.logger import get_logger, short

logger = get_logger(__name__)


@dataclass
class MintedCredential:
    mint: str
    metadata_uri: str
    placeholder: bool = False


class CredentialMinter(Protocol):
    async def mint(self, recipient: str, topic: str, level: str, score: int) -> MintedCredential:
        ...


def build_certificate_metadata(topic: str, level: str, score: int, settings: Settings) -> Dict[str, Any]:
    """NFT metadata (Metaplex JSON standard) for a certificate."""
    max_score = settings.total_points
    return {
        "name": f"{topic} - {level} Certificate",
        "symbol": settings.CERTIFICATE_SYMBOL,
        "description": (
            f"Professional {level} level certificate for {topic}. "
            f"Score: {score}/{max_score}. Issued by {settings.PLATFORM_NAME} on Solana."
        ),
        "image": f"{settings.CERTIFICATE_IMAGE_BASE_URL}/{level.lower()}.png",
        "attributes": [
            {"trait_type": "Topic", "value": topic},
            {"trait_type": "Level", "value": level},
            {"trait_type": "Score", "value": score},
            {"trait_type": "Max Score", "value": max_score},
            {"trait_type": "Platform", "value": settings.PLATFORM_NAME},
            {"trait_type": "Blockchain", "value": settings.SOLANA_NETWORK_LABEL},
        ],
    }


def placeholder_credential() -> MintedCredential:
    """Locally generated identifiers used when minting is unavailable."""
    return MintedCredential(
        mint=f"MOCK-{uuid.uuid4().hex[:8]}",
        metadata_uri=f"https://arweave.net/{uuid.uuid4()}",
        placeholder=True,
    )


class MintingServiceClient:
    """Delegates minting to an HTTP service: POST {recipient, metadata} -> {mint, metadataUri}."""

    def __init__(self, settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings or get_settings()
        self._transport = transport

    async def mint(self, recipient: str, topic: str, level: str, score: int) -> MintedCredential:
        payload = {
            "recipient": recipient,
            "metadata": build_certificate_metadata(topic, level, score, self.settings),
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.MINT_TIMEOUT_SECONDS, transport=self._transport
            ) as client:
                resp = await client.post(self.settings.MINTER_URL, json=payload)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise MintingError(f"Minting service failed: {e}") from e

        mint = data.get("mint") if isinstance(data, dict) else None
        uri = data.get("metadataUri") if isinstance(data, dict) else None
        if not mint or not uri:
            raise MintingError("Minting service returned no mint address")

        logger.info("certificate_minted", recipient=short(recipient), mint=mint, level=level)
        return MintedCredential(mint=mint, metadata_uri=uri)


class DemoMinter:
    """Devnet demo: a fresh keypair address stands in for the mint."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    async def mint(self, recipient: str, topic: str, level: str, score: int) -> MintedCredential:
        metadata = build_certificate_metadata(topic, level, score, self.settings)
        mint_address = str(Keypair().pubkey())
        logger.info(
            "certificate_minted_demo",
            recipient=short(recipient),
            mint=mint_address,
            name=metadata["name"],
        )
        return MintedCredential(mint=mint_address, metadata_uri=f"https://arweave.net/{mint_address[:43]}")


def create_minter(settings: Settings) -> CredentialMinter:
    if settings.MINTER_URL:
        return MintingServiceClient(settings)
    return DemoMinter(settings)
