"""
Seed a demo merchant, its delivery rules and one fence of each shape.
Run after migrations: python3 -m fenceline.scripts.seed_demo
"""
import asyncio

from fenceline.app.core.database import async_session
from fenceline.app.core.logging import get_logger, setup_logging
from fenceline.app.models.merchant import Merchant
from fenceline.app.services.fences import FenceService
from fenceline.app.services.merchants import MerchantService
from fenceline.app.services.rules import RuleService

logger = get_logger(__name__)

DEMO_MERCHANT_ID = "10001"
DEMO_LOCATION = [116.397428, 39.90923]

DEMO_RULES = [
    ("Same day", 1),
    ("Next day", 2),
    ("Two to three days", 3),
]


async def seed():
    async with async_session() as session:
        if await session.get(Merchant, DEMO_MERCHANT_ID) is not None:
            logger.info("Demo merchant already present, nothing to do", merchant_id=DEMO_MERCHANT_ID)
            return

        await MerchantService(session).register_merchant(DEMO_MERCHANT_ID, "Demo shop", DEMO_LOCATION)

        rule_service = RuleService(session)
        rules = [await rule_service.create_rule(name, logic) for name, logic in DEMO_RULES]

        fences = FenceService(session)
        await fences.create_fence(DEMO_MERCHANT_ID, {
            "fence_name": "Inner ring",
            "fence_desc": "Same day delivery",
            "rule_id": rules[0]["id"],
            "shape_type": "circle",
            "coordinates": [DEMO_LOCATION],
            "radius": 5000,
        })
        await fences.create_fence(DEMO_MERCHANT_ID, {
            "fence_name": "City",
            "fence_desc": "Next day delivery",
            "rule_id": rules[1]["id"],
            "shape_type": "polygon",
            "coordinates": [
                [116.20, 39.75],
                [116.60, 39.75],
                [116.60, 40.05],
                [116.20, 40.05],
            ],
        })
        await session.commit()

        logger.info("Demo data seeded", merchant_id=DEMO_MERCHANT_ID, rules=len(rules))


if __name__ == "__main__":
    setup_logging(json_format=False)
    asyncio.run(seed())
