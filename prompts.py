"""Assistant prompts that steer the model toward the schedule tools."""
from typing import Dict, Optional

FETCH_INSTRUCTION = (
    "First, call the **get-todays-events** or **get-todays-schedule** tool "
    "to fetch the user's calendar events for today."
)

PROMPTS = {
    'what-to-do-today': {
        'description': (
            "What is there to do today? Summarizes and prioritizes today's "
            "calendar events."
        ),
        'body': """Then, based on the events returned:
1. Summarize what they have scheduled
2. List events in priority/chronological order
3. Highlight the "next up" event if applicable
4. If no events, suggest they might have a free day or ask if they want to add something""",
    },
    'how-to-plan-day': {
        'description': (
            "How should I do things? Suggests order, time blocks, and pacing "
            "for today's schedule."
        ),
        'body': """Then, provide actionable planning advice:
1. Suggest an order for tackling tasks (consider time, duration, and dependencies)
2. Identify potential time blocks or focus windows
3. Recommend breaks or buffer time between back-to-back meetings
4. Note any conflicts or tight scheduling""",
    },
    'what-to-do-first': {
        'description': (
            "What should I do first? Identifies the single next or most "
            "important task for today."
        ),
        'body': """Then, identify the ONE thing they should do first:
1. If there's an event marked "next up" or starting soon, that's the answer
2. Otherwise, pick the soonest or highest-priority event
3. Give a clear, actionable recommendation: "You should do X first\"""",
    },
}


def list_prompts() -> Dict[str, str]:
    """Map each prompt name to its description."""
    return {name: prompt['description'] for name, prompt in PROMPTS.items()}


def get_prompt(name: str, focus_area: Optional[str] = None) -> str:
    """
    Render a prompt as markdown.
    
    Args:
        name: Prompt name, e.g. "what-to-do-first"
        focus_area: Optional area such as "work" to narrow the advice
        
    Returns:
        Markdown instructions for the assistant
        
    Raises:
        KeyError: If the prompt name is unknown
    """
    prompt = PROMPTS[name]
    text = f"{FETCH_INSTRUCTION}\n\n{prompt['body']}"
    if focus_area and focus_area.strip():
        text += f"\n\nFocus on events related to: {focus_area.strip()}"
    return text
