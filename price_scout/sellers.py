"""Known key sellers, with how far each can be trusted and why."""
from dataclasses import dataclass
from typing import Optional

from .models import TrustLevel


@dataclass(frozen=True)
class Seller:
    id: str
    name: str
    website: str
    trust_level: TrustLevel
    description: str
    features: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "website": self.website,
            "trust_level": self.trust_level.name,
            "description": self.description,
            "features": list(self.features),
        }


SELLERS: tuple[Seller, ...] = (
    Seller("cdkeys", "CDKeys", "https://www.cdkeys.com", TrustLevel.HIGH,
           "Well-established digital key retailer with excellent reputation",
           ("Instant delivery", "24/7 support", "Money-back guarantee")),
    Seller("eneba", "Eneba", "https://www.eneba.com", TrustLevel.HIGH,
           "Large marketplace with buyer protection",
           ("Buyer protection", "Multiple sellers", "Competitive prices")),
    Seller("instant_gaming", "Instant Gaming", "https://www.instant-gaming.com", TrustLevel.HIGH,
           "European-based trusted retailer",
           ("Fast delivery", "Good prices", "Reliable")),
    Seller("gmg", "Green Man Gaming", "https://www.greenmangaming.com", TrustLevel.HIGH,
           "Authorized official reseller",
           ("Official partner", "XP rewards", "Trustworthy")),
    Seller("kinguin", "Kinguin", "https://www.kinguin.net", TrustLevel.MEDIUM,
           "Marketplace with buyer protection available",
           ("Buyer protection available", "Large selection", "Competitive")),
    Seller("g2a", "G2A", "https://www.g2a.com", TrustLevel.CAUTION,
           "Large marketplace - use G2A Shield for protection",
           ("Huge selection", "Use G2A Shield", "Check seller ratings")),
    Seller("humble", "Humble Bundle", "https://www.humblebundle.com", TrustLevel.HIGH,
           "Official partner, supports charity",
           ("Official keys", "Charity support", "Humble Choice")),
    Seller("gamivo", "Gamivo", "https://www.gamivo.com", TrustLevel.MEDIUM,
           "Marketplace with Smart subscription benefits",
           ("Smart subscription", "Buyer protection", "Good prices")),
)


def all_sellers() -> list[Seller]:
    return list(SELLERS)


def get_seller(seller_id: str) -> Optional[Seller]:
    return next((s for s in SELLERS if s.id == seller_id), None)


def find_seller(name: str) -> Optional[Seller]:
    """Look a seller up by display name, ignoring case."""
    wanted = name.strip().lower()
    return next((s for s in SELLERS if s.name.lower() == wanted), None)


def trusted_sellers() -> list[Seller]:
    return [s for s in SELLERS if s.trust_level == TrustLevel.HIGH]
