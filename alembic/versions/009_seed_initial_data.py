"""009: seed initial data

Revision ID: 009
Revises: 008
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op

revision: str = "009"
down_revision: Union[str, None] = "008"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_ITEMS = [
    ("IRON_ORE", "Iron Ore"),
    ("COAL", "Coal"),
    ("COPPER_ORE", "Copper Ore"),
    ("WATER", "Water"),
    ("IRON_INGOT", "Iron Ingot"),
    ("COPPER_INGOT", "Copper Ingot"),
    ("HAND_TOOLS", "Hand Tools"),
    ("STEEL_INGOT", "Steel Ingot"),
]

# code, region, cash, is_player, specialization
_COMPANIES = [
    ("PLAYER_CO", "CORE", 500_000, True, None),
    ("BOT_LIQ_CORE_1", "CORE", 1_000_000, False, "LIQUIDITY"),
    ("BOT_LIQ_CORE_2", "CORE", 1_000_000, False, "LIQUIDITY"),
    ("BOT_PROD_CORE_1", "CORE", 750_000, False, "PRODUCER"),
    ("BOT_LIQ_INDUSTRIAL_1", "INDUSTRIAL", 1_000_000, False, "LIQUIDITY"),
]

# company, item, quantity
_INVENTORIES = [
    ("PLAYER_CO", "IRON_ORE", 50),
    ("BOT_LIQ_CORE_1", "IRON_ORE", 200),
    ("BOT_LIQ_CORE_1", "COAL", 200),
    ("BOT_LIQ_CORE_1", "IRON_INGOT", 40),
    ("BOT_LIQ_CORE_2", "COPPER_ORE", 200),
    ("BOT_LIQ_CORE_2", "WATER", 500),
    ("BOT_PROD_CORE_1", "IRON_ORE", 120),
    ("BOT_PROD_CORE_1", "COAL", 120),
    ("BOT_LIQ_INDUSTRIAL_1", "IRON_ORE", 200),
]

# code, output item, output qty, duration, [(input item, qty)]
_RECIPES = [
    ("SMELT_IRON", "IRON_INGOT", 1, 2, [("IRON_ORE", 2), ("COAL", 1)]),
    ("SMELT_COPPER", "COPPER_INGOT", 1, 2, [("COPPER_ORE", 2), ("COAL", 1)]),
    ("FORGE_HAND_TOOLS", "HAND_TOOLS", 1, 3, [("IRON_INGOT", 1)]),
    ("FORGE_STEEL", "STEEL_INGOT", 1, 4, [("IRON_INGOT", 2), ("COAL", 2)]),
]

# code, cost, duration, prerequisites, unlocked recipes
_RESEARCH = [
    ("BASIC_SMELTING", 20_000, 2, [], ["SMELT_COPPER"]),
    ("TOOLMAKING", 40_000, 3, ["BASIC_SMELTING"], ["FORGE_HAND_TOOLS"]),
    ("STEELWORKS", 90_000, 5, ["BASIC_SMELTING"], ["FORGE_STEEL"]),
]


def _id(prefix: str, code: str) -> str:
    return f"{prefix}_{code.lower()}"


def _item_rows() -> list[str]:
    return [f"('{_id('item', code)}', '{code}', '{name}')" for code, name in _ITEMS]


def _company_rows() -> list[str]:
    rows = []
    for code, region, cash, is_player, spec in _COMPANIES:
        spec_sql = f"'{spec}'" if spec else "NULL"
        player_sql = "TRUE" if is_player else "FALSE"
        rows.append(
            f"('{_id('co', code)}', '{code}', '{_id('region', region)}', {cash}, 0, {cash}, "
            f"{player_sql}, {spec_sql})"
        )
    return rows


def _inventory_rows() -> list[str]:
    region_of = {code: region for code, region, *_ in _COMPANIES}
    return [
        f"('{_id('co', company)}', '{_id('item', item)}', '{_id('region', region_of[company])}', "
        f"{quantity}, 0)"
        for company, item, quantity in _INVENTORIES
    ]


def _recipe_rows() -> list[str]:
    return [
        f"('{_id('recipe', code)}', '{code}', '{_id('item', output)}', {quantity}, {duration})"
        for code, output, quantity, duration, _ in _RECIPES
    ]


def _recipe_input_rows() -> list[str]:
    return [
        f"('{_id('recipe', code)}', '{_id('item', item)}', {quantity})"
        for code, *_, inputs in _RECIPES
        for item, quantity in inputs
    ]


def _node_rows() -> list[str]:
    return [
        f"('{_id('node', code)}', '{code}', {cost}, {duration})"
        for code, cost, duration, _, _ in _RESEARCH
    ]


def _prerequisite_rows() -> list[str]:
    return [
        f"('{_id('node', code)}', '{_id('node', prereq)}')"
        for code, _, _, prereqs, _ in _RESEARCH
        for prereq in prereqs
    ]


def _unlock_rows() -> list[str]:
    return [
        f"('{_id('node', code)}', '{_id('recipe', recipe)}')"
        for code, *_, unlocks in _RESEARCH
        for recipe in unlocks
    ]


def _insert(table: str, columns: str, rows: list[str]) -> str:
    values = ",\n    ".join(rows)
    return f"INSERT INTO {table} ({columns}) VALUES\n    {values};"


def upgrade() -> None:
    op.execute("""
        INSERT INTO regions (id, code, name) VALUES
            ('region_core', 'CORE', 'Core Worlds'),
            ('region_industrial', 'INDUSTRIAL', 'Industrial Belt');
    """)
    op.execute(_insert("items", "id, code, name", _item_rows()))
    op.execute(_insert(
        "companies",
        "id, code, region_id, cash_cents, reserved_cash_cents, initial_cash_cents, "
        "is_player, specialization",
        _company_rows(),
    ))
    op.execute(_insert(
        "inventories",
        "company_id, item_id, region_id, quantity, reserved_quantity",
        _inventory_rows(),
    ))
    op.execute(_insert(
        "recipes", "id, code, output_item_id, output_quantity, duration_ticks", _recipe_rows()
    ))
    op.execute(_insert("recipe_inputs", "recipe_id, item_id, quantity", _recipe_input_rows()))
    # Everyone starts with iron smelting; the rest comes from research.
    op.execute("""
        INSERT INTO company_recipes (company_id, recipe_id, is_unlocked)
        SELECT c.id, 'recipe_smelt_iron', TRUE FROM companies c;
    """)

    op.execute(_insert(
        "research_nodes", "id, code, cost_cash_cents, duration_ticks", _node_rows()
    ))
    op.execute(_insert(
        "research_prerequisites", "node_id, prerequisite_node_id", _prerequisite_rows()
    ))
    op.execute(_insert("research_unlock_recipes", "node_id, recipe_id", _unlock_rows()))
    # Roots start AVAILABLE for players; everything else LOCKED.
    op.execute("""
        INSERT INTO company_research (company_id, node_id, status)
        SELECT c.id, n.id,
               CASE WHEN EXISTS (
                   SELECT 1 FROM research_prerequisites p WHERE p.node_id = n.id
               ) THEN 'LOCKED' ELSE 'AVAILABLE' END
        FROM companies c CROSS JOIN research_nodes n
        WHERE c.is_player = TRUE;
    """)

    op.execute("INSERT INTO world_tick_state (id, current_tick, lock_version) VALUES (1, 0, 0);")


def downgrade() -> None:
    op.execute("DELETE FROM world_tick_state;")
    op.execute("DELETE FROM company_research;")
    op.execute("DELETE FROM research_unlock_recipes;")
    op.execute("DELETE FROM research_prerequisites;")
    op.execute("DELETE FROM research_nodes;")
    op.execute("DELETE FROM company_recipes;")
    op.execute("DELETE FROM recipe_inputs;")
    op.execute("DELETE FROM recipes;")
    op.execute("DELETE FROM inventories;")
    op.execute("DELETE FROM companies;")
    op.execute("DELETE FROM items;")
    op.execute("DELETE FROM regions;")
