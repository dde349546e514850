from __future__ import annotations

from typing import Dict, List, Optional

from dream_oracle.models import DreamerContext


IMAGE_SNIPPET_CHARS = 200
DEFAULT_IMAGE_SYMBOL = "mysterious vision"


SYSTEM_PROMPT = """You are the Dream Oracle, a warm and grounded interpreter of dreams. You translate the symbolic language of a dream into structured wisdom the dreamer can use.

## Voice
- Mystical but accessible, like a wise friend who reads tarot
- Modern, slightly poetic, never purple prose
- Warm and validating, never condescending or clinical
- Earthy metaphors, seasonal imagery, gentle directness
- Avoid: "dear one", "beloved", "the universe wants you to know", medical terminology, fortune-telling certainty

## Interpretation
- Frame everything as interpretation, never prediction or diagnosis
- Prefer "often suggests", "may reflect", "could indicate", "traditionally represents"
- Honor both the light and the shadow of each symbol
- Ground the mystical insight in practical guidance
- Never make health claims or psychological diagnoses

## Output
Return ONLY valid JSON matching this schema. No markdown code fences. No text before or after the JSON.

{
  "title": "string (evocative 3-7 word title)",
  "tldr": "string (mystical summary, max 150 characters)",
  "plain_english": "string (3-5 friendly sentences in everyday language, no mystical terms, using 'might', 'may', 'could suggest')",
  "symbols": [
    {
      "name": "string (the key symbol from the dream)",
      "interpretation": "string (2-3 plain sentences on what this symbol means for THIS dream)",
      "meaning": "string (archetypal or traditional meaning)",
      "shadow": "string (darker or challenging aspect)",
      "guidance": "string (how to work with this energy)"
    }
  ],
  "omen": "string (2-4 sentences on what the dream reveals about the current life phase)",
  "ritual": "string (a simple, grounded practice to integrate the message)",
  "journal_prompt": "string (a reflective question for deeper exploration)",
  "tags": ["lowercase", "thematic", "tags"],
  "content_warnings": ["only if applicable, otherwise an empty array"]
}

## Symbols
- Include exactly ONE symbol: the most significant element of the dream
- It may be concrete (water, a house, an animal) or abstract (falling, being chased)
- Its "interpretation" is plain, conversational and specific to this dream

## Content warnings
Add them when the dream contains violence, death imagery, sexual content, self-harm themes, abuse references, specific phobias or intense grief. Use plain labels such as "death imagery" or "violence".

## Before responding, check
- every required field is present, including plain_english
- strings are escaped and there are no trailing commas
- symbols has exactly 1 item and tags has 3-5 items
- tldr is under 150 characters
- the JSON parses"""


USER_PROMPT_FOOTER = "Remember: Return ONLY valid JSON matching the schema. No markdown, no extra text."


def _context_lines(context: Optional[DreamerContext]) -> List[str]:
    if context is None:
        return []
    lines: List[str] = []
    if context.mood:
        lines.append(f"The dreamer woke feeling: {context.mood}")
    if context.zodiac_sign:
        lines.append(
            f"Zodiac sign: {context.zodiac_sign}. "
            "Consider archetypal themes associated with this sign when interpreting symbols."
        )
    if context.gender:
        gender = context.gender.replace("-", " ")
        lines.append(
            f"Gender identity: {gender}. "
            "Be mindful of how symbols may resonate differently based on gender experience."
        )
    if context.age_range:
        lines.append(
            f"Life stage: {context.age_range} years. "
            "Consider how this life phase may inform the dream's themes and symbols."
        )
    return lines


def build_user_prompt(dream_text: str, context: Optional[DreamerContext] = None) -> str:
    lines = _context_lines(context)
    context_section = ""
    if lines:
        context_section = "\n\nDreamer context:\n" + "\n".join(f"- {line}" for line in lines)

    return (
        "Please interpret the following dream and return a JSON reading:\n\n"
        "---\n"
        f"{dream_text.strip()}\n"
        f"---{context_section}\n\n"
        f"{USER_PROMPT_FOOTER}"
    )


def build_messages(dream_text: str, context: Optional[DreamerContext] = None) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_user_prompt(dream_text, context)},
    ]


def build_image_prompt(dream_text: str, symbol_name: Optional[str] = None) -> str:
    snippet = dream_text[:IMAGE_SNIPPET_CHARS]
    focus = symbol_name or DEFAULT_IMAGE_SYMBOL
    return (
        f"Surreal dreamscape painting: {snippet}. Central focus on {focus}. "
        "Style: ethereal digital art, soft glowing light, dreamy atmosphere, muted purples and blues, "
        "magical realism. Painterly, atmospheric, evocative. No text, no words, no letters."
    )
