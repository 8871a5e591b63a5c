"""Prompt template for the assistant model.

The model is asked to reply with a single JSON object; the reply is still
treated as untrusted free text by the response parser.
"""

INTENT_TYPE_DESCRIPTIONS: dict[str, str] = {
    "general": "a factual or conversational question you can answer directly",
    "google-search": "the user wants to search something on Google",
    "youtube-search": "the user wants to search something on YouTube",
    "youtube-play": "the user wants to play a video or song directly",
    "calculator-open": "the user wants to open a calculator",
    "instagram-open": "the user wants to open Instagram",
    "facebook-open": "the user wants to open Facebook",
    "weather-show": "the user wants to know the weather",
    "get-time": "the user asks for the current time",
    "get-date": "the user asks for today's date",
    "get-day": "the user asks what day it is",
    "get-month": "the user asks for the current month",
}

ASSISTANT_PROMPT_TEMPLATE = """\
You are a virtual assistant named {assistant_name} created by {user_name}.
You are not Google. You behave like a voice-enabled assistant.

Your task is to understand the user's natural language input and reply with a
JSON object of exactly this shape:

{{
  "type": "<one of the types listed below>",
  "userInput": "<the user input without your own name; for searches, only the search text>",
  "response": "<a short spoken reply for the user>"
}}

Types:
{type_lines}

Rules:
- If someone asks who created you, say {user_name}.
- Reply only with the JSON object, nothing else.

User input: {command}
"""


def build_assistant_prompt(command: str, assistant_name: str, user_name: str) -> str:
    """Render the assistant prompt for one command."""
    type_lines = "\n".join(
        f'- "{intent_type}": {description}'
        for intent_type, description in INTENT_TYPE_DESCRIPTIONS.items()
    )
    return ASSISTANT_PROMPT_TEMPLATE.format(
        assistant_name=assistant_name,
        user_name=user_name,
        type_lines=type_lines,
        command=command,
    )
