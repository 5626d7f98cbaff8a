"""
Contract builder for Braindump.

Assembles the instruction text handed to the classification oracle: the
category taxonomy, refinement and deduplication rules, the date rules with
the anchor date injected literally, and the exact output schema.
"""

from datetime import date, timedelta

from braindump.dates import WEEKDAYS, day_of_week, next_month, next_week, next_weekday, this_weekday
from braindump.models import CATEGORY_LABELS, Category, ClassificationRequest

CATEGORY_DESCRIPTIONS = {
    Category.DO: "Actions to complete (tasks, to-dos, reminders). Purchase-related items never go here, always Shopping List",
    Category.PLAN: "Things to research, learn, explore, or prepare",
    Category.THINK: "Ideas, reflections, concepts, creative thoughts",
    Category.SHOPPING_LIST: "Anything to buy or purchase, consumable (groceries, food) or not (furniture, electronics)",
    Category.IMPORTANT_DATES_EVENTS: "Birthdays, anniversaries, deadlines, significant or annual occasions",
}

REFINEMENT_RULES = """- Make tasks clear and actionable
- Preserve explicit context (dates, times, names, details)
- Do not split a task unless the input explicitly lists separate tasks
- Do not invent new or unrelated tasks; only categorize and clarify the input
- Purchase-related items always go to Shopping List, never to Do
- Never treat the examples in these instructions as input

### Classification order
1. Involves buying or purchasing -> Shopping List
2. Significant life event or annual occasion -> Important Dates/Events
3. Actionable, with or without a date/time -> Do
4. Needs research or preparation -> Plan
5. An idea or concept -> Think"""

DEDUPLICATION_RULES = """- Compare NEW INPUT against PREVIOUS ITEMS
- Remove exact duplicates
- Merge semantically similar items into one entry
- When merging, keep the most specific entry
- When an item repeats a PREVIOUS ITEM, reuse the previous wording exactly"""

ITEM_SCHEMA = '{"item": string, "recurrence": "daily"|"weekly"|"monthly"|"yearly"|null, "date": "YYYY-MM-DD"|null, "time": "HH:MM"|null, "completed": boolean}'


def build_categories() -> str:
    """Category taxonomy, one line per category."""
    return "\n".join(
        f"- **{CATEGORY_LABELS[category]}:** {description}"
        for category, description in CATEGORY_DESCRIPTIONS.items()
    )


def _weekday_examples(anchor: date) -> tuple[list[str], list[str]]:
    this_lines = []
    next_lines = []
    # Start the list at the anchor's weekday so the tie-break example comes first
    start = WEEKDAYS.index(day_of_week(anchor).lower())
    for offset in range(7):
        name = WEEKDAYS[(start + offset) % 7].capitalize()
        this_lines.append(f'  * "this/coming {name}" = {this_weekday(anchor, name).isoformat()}')
        next_lines.append(f'  * "next/following {name}" = {next_weekday(anchor, name).isoformat()}')
    return this_lines, next_lines


def build_date_rules(anchor: date, timezone: str = "UTC") -> str:
    """Date and time rules, with every example computed from ``anchor``."""
    today = anchor.isoformat()
    weekday = day_of_week(anchor)
    this_lines, next_lines = _weekday_examples(anchor)
    example_day = 15

    return f"""1. Current reference date: {today} ({weekday}), timezone {timezone}.
Use this as the base date for all date calculations. Never use any other notion of "today".

2. Date output requirements:
- MUST output actual calculated dates, never placeholders
- Format: YYYY-MM-DD
- All dates must be equal to or after {today}
- Never output template text such as "YYYY" or "MM"; when no date applies, use null

3. Basic date terms:
- "today" -> {today}
- "tomorrow", "day after" or "next day" -> {(anchor + timedelta(days=1)).isoformat()}
- "day after tomorrow" -> {(anchor + timedelta(days=2)).isoformat()}

4. Weekday calculations:
a) "this <weekday>" or "coming <weekday>":
- If the weekday is still ahead this week, use this week's date
- If it already occurred this week, including today, use next week's date
- From {today}:
{chr(10).join(this_lines)}

b) "next <weekday>" or "following <weekday>":
- Always the weekday in the following week; "following" means exactly "next"
- From {today}:
{chr(10).join(next_lines)}
- Weeks run Sunday to Saturday, so for a weekday that already occurred this week "this" and "next" give the same date

5. Other next/following terms:
a) "next week" or "following week" without a weekday: Monday of the week seven days out
- From {today}: {next_week(anchor).isoformat()}
b) "next month" or "following month":
- With a day (e.g. "next month {example_day}th"), that day in the next month: {next_month(anchor, example_day).isoformat()}
- Without a day, the 1st of the next month: {next_month(anchor).isoformat()}

6. Time processing:
- Format: HH:MM, 24-hour, zero-padded
- Convert 12-hour times (e.g. "3pm" -> "15:00", "9:30 am" -> "09:30")
- If no time is given, use null

7. Recurrence:
- daily, weekly, monthly, yearly, or null for a one-time item
- Any other recurrence is null

8. The dates shown above are derived from {today}. Do not treat them as input."""


def build_output_format() -> str:
    """Exact output schema: an object keyed by the five category labels."""
    lines = [f'  "{label}": [{ITEM_SCHEMA}]' for label in CATEGORY_LABELS.values()]
    return "```json\n{\n" + ",\n".join(lines) + "\n}\n```"


def build_contract(request: ClassificationRequest) -> str:
    """
    Build the full instruction text for one organize pass.

    Deterministic: the same request always yields the same text.
    """
    anchor = request.anchor_date.isoformat()
    sections = [
        "You are organizing user notes into categories.",
        f"Process only the NEW INPUT and PREVIOUS ITEMS below. Use {anchor} as the current date "
        "for all date calculations. Do not create your own items or copy any example.",
        "",
        "### Categories:",
        build_categories(),
        "",
        "### Refinement:",
        REFINEMENT_RULES,
        "",
        "### Deduplication:",
        DEDUPLICATION_RULES,
        "",
        "### DateTime:",
        build_date_rules(request.anchor_date, request.timezone),
        "",
        "### Output Format:",
        "Return ONLY the JSON object, every category present, lists may be empty.",
        build_output_format(),
        "",
        "**NEW INPUT:**",
        request.new_input_text,
    ]

    if request.previous_items_text:
        sections += ["", "**PREVIOUS ITEMS:**", request.previous_items_text]

    return "\n".join(sections)
