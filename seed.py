#!/usr/bin/env python3
import asyncio
from decimal import Decimal

from prisma.enums import PaymentMode, UserRole

from prisma import Prisma
from csr26_api.domains.settings.service import (
    CERTIFICATION_THRESHOLD,
    DEFAULT_MULTIPLIER,
    DEFAULTS,
    MONTHLY_BILLING_MINIMUM,
    PRICE_PER_KG,
)

SETTINGS = [
    (PRICE_PER_KG, "Price per kg of plastic removal in EUR"),
    (CERTIFICATION_THRESHOLD, "EUR threshold for certification"),
    (DEFAULT_MULTIPLIER, "Default impact multiplier for new merchants"),
    (MONTHLY_BILLING_MINIMUM, "Minimum EUR for monthly billing charge"),
]

MERCHANTS = [
    {"name": "Conad", "email": "merchant@conad.it", "multiplier": 2},
    {"name": "Altromercato", "email": "merchant@altromercato.it", "multiplier": 5},
]

GIFT_CODES = [
    ("TEST-GC25-001", "GC-25EUR"),
    ("TEST-GC25-002", "GC-25EUR"),
    ("TEST-GC10-001", "GC-10EUR"),
    ("TEST-GC10-002", "GC-10EUR"),
    ("TEST-GC05-001", "GC-5EUR"),
    ("TEST-GC05-002", "GC-5EUR"),
]


def sku_fixtures(conad_id: str, altromercato_id: str) -> list[dict]:
    """One SKU per contribution flow, plus three gift card denominations."""
    return [
        {
            "code": "LOT-CONAD-01",
            "name": "Conad Deli Product - Prepaid",
            "description": "Supermarket product with prepaid plastic credits",
            "paymentMode": PaymentMode.CLAIM,
            "price": Decimal(0),
            "weightGrams": 17,
            "multiplier": 2,
            "merchantId": conad_id,
        },
        {
            "code": "FUNDED-01",
            "name": "Merchant Funded Allocation",
            "description": "Merchant pays on behalf of customer",
            "paymentMode": PaymentMode.CLAIM,
            "price": Decimal(5),
            "merchantId": conad_id,
        },
        {
            "code": "PASTA-ARTISAN-01",
            "name": "Artisan Pasta - Customer Pay",
            "description": "Small shop product - customer pays environmental fee",
            "paymentMode": PaymentMode.PAY,
            "price": Decimal(0),
            "paymentRequired": True,
        },
        *[
            {
                "code": f"GC-{value}EUR",
                "name": f"Gift Card €{value}",
                "description": f"Physical gift card worth €{value}",
                "paymentMode": PaymentMode.GIFT_CARD,
                "price": Decimal(value),
                "validationRequired": True,
            }
            for value in (25, 10, 5)
        ],
        {
            "code": "ALLOC-ECOM-01",
            "name": "E-commerce Allocation",
            "description": "Post-checkout allocation from partner e-commerce",
            "paymentMode": PaymentMode.ALLOCATION,
            "price": Decimal(0),
            "merchantId": altromercato_id,
        },
    ]


async def main():
    print("🌱 Starting database seed...")

    prisma = Prisma()
    await prisma.connect()

    try:
        for key, description in SETTINGS:
            await prisma.setting.upsert(
                where={"key": key},
                data={
                    "create": {
                        "key": key,
                        "value": DEFAULTS[key],
                        "description": description,
                    },
                    "update": {"value": DEFAULTS[key], "description": description},
                },
            )
        print(f"✅ Settings: {len(SETTINGS)}")

        admin = await prisma.user.upsert(
            where={"email": "admin@impactcsr26.it"},
            data={
                "create": {
                    "email": "admin@impactcsr26.it",
                    "firstName": "Admin",
                    "lastName": "CSR26",
                    "role": UserRole.ADMIN,
                },
                "update": {},
            },
        )
        print(f"✅ Admin user: {admin.email}")

        merchant_ids: dict[str, str] = {}
        for merchant in MERCHANTS:
            record = await prisma.merchant.upsert(
                where={"email": merchant["email"]},
                data={"create": {**merchant, "monthlyBilling": True}, "update": {}},
            )
            merchant_ids[record.name] = record.id
            print(f"✅ Merchant: {record.name} ({record.id})")

        skus = sku_fixtures(merchant_ids["Conad"], merchant_ids["Altromercato"])
        for sku in skus:
            await prisma.sku.upsert(
                where={"code": sku["code"]}, data={"create": sku, "update": {}}
            )
        print(f"✅ SKUs: {len(skus)}")

        for code, sku_code in GIFT_CODES:
            await prisma.giftcode.upsert(
                where={"code": code},
                data={"create": {"code": code, "skuCode": sku_code}, "update": {}},
            )
        print(f"✅ Gift codes: {len(GIFT_CODES)}")

        print("🎉 Seed completed successfully!")
    except Exception as e:
        print(f"❌ Seed failed: {e}")
        raise
    finally:
        await prisma.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
