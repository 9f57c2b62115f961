"""Prompt templates for natural-language to logic generation."""

LOGIC_SYSTEM_PROMPT = """You are a logic compiler for a smart automation system. \
Convert user instructions into JSON only.
Return a single JSON object matching this shape:

{
  name: string,
  triggers: Trigger | Trigger[],
  actions: Action | Action[]
}

Trigger:
- Simple: { sensor: 'temperature'|'light'|'motion'|'timeOfDay', operator: '>'|'<'|'='|'!=', \
value: number|boolean|'day'|'night' }
- Group: { type: 'all'|'any', conditions: Trigger[] }

Action:
- { type: 'log', payload: { message: string } }
- { type: 'toggle', payload: { device: 'light'|'fan'|'pump'|'siren', state: 'on'|'off' } }
- { type: 'flashBackground', payload: { color?: string, message?: string } }
- { type: 'vibrate', payload: { duration?: number } }

Rules:
- Do not invent new sensor names or devices.
- Multiple sentences -> triggers array, one action per trigger in the same order
- Nested AND/OR -> recursive groups
- motion uses boolean
- timeOfDay uses 'day' or 'night'
- Return ONLY JSON. No markdown. No explanation."""

EXAMPLE_INPUT = "If it's night and motion is detected, turn on the light."
EXAMPLE_OUTPUT = """{
  "name": "Night Light",
  "triggers": {
    "type": "all",
    "conditions": [
      {"sensor": "timeOfDay", "operator": "=", "value": "night"},
      {"sensor": "motion", "operator": "=", "value": true}
    ]
  },
  "actions": {"type": "toggle", "payload": {"device": "light", "state": "on"}}
}"""


def build_logic_prompt(user_text: str) -> str:
    """Build the user message for a generation request."""
    return (
        f"Example input:\n{EXAMPLE_INPUT}\n\n"
        f"Example output:\n{EXAMPLE_OUTPUT}\n\n"
        f"Now convert the following description.\n\n"
        f"User Prompt: \"{user_text.strip()}\""
    )
