"""
Product Finder demo questionnaires.

Seeds the laptop, TV and air-conditioner categories used by the front page:
1. Laptop - usage, budget, screen size, plus a graphics branch for gamers
2. TV - room size, content
3. AC - room size, noise sensitivity
"""

from typing import Any, Dict, List
import logging

from quizflow.storage.base import FlowStore


logger = logging.getLogger(__name__)


# slug -> category definition. Options carrying "jump" are wired with a
# condition to the step of that key.
DEMO_FLOWS: Dict[str, Dict[str, Any]] = {
    "laptop": {
        "name": "Laptop",
        "steps": [
            {
                "key": "usage",
                "title": "What will you mostly use it for?",
                "description": "Pick the closest match.",
                "options": [
                    {"title": "Work", "description": "Documents, mail, meetings"},
                    {"title": "Gaming", "description": "Modern titles", "jump": "graphics"},
                    {"title": "Study", "description": "Notes and browsing"},
                ],
            },
            {
                "key": "budget",
                "title": "What is your budget?",
                "options": [
                    {"title": "Under $800"},
                    {"title": "$800 - $1500"},
                    {"title": "Over $1500"},
                ],
            },
            {
                "key": "screen",
                "title": "Which screen size do you prefer?",
                "options": [
                    {"title": "13-14 inch", "description": "Light and portable"},
                    {"title": "15-16 inch"},
                    {"title": "17 inch or larger"},
                ],
            },
            {
                "key": "graphics",
                "title": "How demanding are your games?",
                "is_conditional": True,
                "parent": ("usage", "Gaming"),
                "options": [
                    {"title": "Indie and esports"},
                    {"title": "AAA at high settings"},
                ],
            },
        ],
    },
    "tv": {
        "name": "TV",
        "steps": [
            {
                "key": "room",
                "title": "How big is the room?",
                "options": [
                    {"title": "Bedroom"},
                    {"title": "Living room"},
                    {"title": "Home theater"},
                ],
            },
            {
                "key": "content",
                "title": "What do you watch most?",
                "options": [
                    {"title": "Movies and series"},
                    {"title": "Sports"},
                    {"title": "Console games"},
                ],
            },
        ],
    },
    "ac": {
        "name": "AC",
        "steps": [
            {
                "key": "area",
                "title": "What area should it cool?",
                "options": [
                    {"title": "Up to 20 m2"},
                    {"title": "20 - 40 m2"},
                    {"title": "Over 40 m2"},
                ],
            },
            {
                "key": "noise",
                "title": "How sensitive are you to noise?",
                "options": [
                    {"title": "Not at all"},
                    {"title": "It runs while I sleep"},
                ],
            },
        ],
    },
}


async def seed_demo_flows(store: FlowStore) -> List[str]:
    """
    Create the demo categories that do not exist yet.

    Returns:
        Slugs of the categories that were created
    """
    existing = {category.slug for category in await store.list_categories()}
    created = []

    for slug, definition in DEMO_FLOWS.items():
        if slug in existing:
            continue

        category = await store.create_category(name=definition["name"], slug=slug)
        step_ids: Dict[str, str] = {}
        option_ids: Dict[tuple, str] = {}
        jumps = []

        for step_def in definition["steps"]:
            parent = step_def.get("parent")
            step = await store.create_step(
                category_id=category.id,
                title=step_def["title"],
                description=step_def.get("description", ""),
                parent_option_id=option_ids.get(parent) if parent else None,
                is_conditional=step_def.get("is_conditional", False),
            )
            step_ids[step_def["key"]] = step.id

            for option_def in step_def["options"]:
                option = await store.create_option(
                    step_id=step.id,
                    title=option_def["title"],
                    description=option_def.get("description", ""),
                )
                option_ids[(step_def["key"], option_def["title"])] = option.id
                if "jump" in option_def:
                    jumps.append((option.id, option_def["jump"]))

        for option_id, target_key in jumps:
            await store.create_condition(option_id=option_id, next_step_id=step_ids[target_key])

        created.append(slug)
        logger.info(f"Seeded demo flow '{slug}' with {len(step_ids)} steps")

    return created
