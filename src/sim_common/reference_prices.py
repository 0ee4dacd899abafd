"""Static per-item reference prices used when the market has no signal yet."""

DEFAULT_PRICE_CENTS = 100

DEFAULT_REFERENCE_PRICES: dict[str, int] = {
    "IRON_ORE": 80,
    "COAL": 55,
    "COPPER_ORE": 95,
    "WATER": 15,
    "FERTILIZER": 35,
    "BIO_SUBSTRATE": 40,
    "IRON_INGOT": 200,
    "COPPER_INGOT": 245,
    "HAND_TOOLS": 350,
    "STEEL_INGOT": 430,
    "STEEL_BEAM": 940,
    "FASTENERS": 150,
    "MACHINE_PARTS": 1250,
    "TOOL_KIT": 2100,
    "POWER_UNIT": 2550,
    "CONVEYOR_MODULE": 4250,
    "INDUSTRIAL_PRESS": 11500,
    "SYNTHETIC_CONDUIT": 520,
    "BIOCELL_CANISTER": 780,
    "SERVO_DRIVE": 1450,
    "OPTIC_MODULE": 1820,
    "NEURAL_INTERFACE": 3600,
    "SPINAL_LINK": 7600,
    "OCULAR_IMPLANT": 8200,
    "CYBER_ARMATURE": 9400,
    "CYBERNETIC_SUITE": 24000,
}


def fallback_price_cents(item_code: str) -> int:
    return DEFAULT_REFERENCE_PRICES.get(item_code, DEFAULT_PRICE_CENTS)
