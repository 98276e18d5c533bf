# config/credit_config.py

from typing import Dict, Any, List

CREDIT_PACKS: List[Dict[str, Any]] = [
    {
        "id": 1,
        "name": "Basic",
        "credits": 20,
        "price_usd": 1,
        "price_id": "price_basic_20",
    },
    {
        "id": 2,
        "name": "Pro",
        "credits": 30,
        "price_usd": 2,
        "price_id": "price_pro_30",
    },
]

def get_credit_pack(pack_id: int) -> Dict[str, Any]:
    """Look up a credit pack by id, raising KeyError for unknown packs."""
    for pack in CREDIT_PACKS:
        if pack["id"] == pack_id:
            return pack
    raise KeyError(pack_id)
