from __future__ import annotations

from dream_oracle.models import Reading, Symbol


FALLBACK_READING = Reading(
    title="The Veiled Message",
    tldr="A dream awaits deeper remembering; the threshold holds wisdom still.",
    plain_english=(
        "Your dream seems to be hovering just out of reach of your memory, which is common and meaningful. "
        "This often happens when we are processing something important but are not quite ready to face it directly. "
        "It might be worth paying closer attention to your dreams over the next few nights, "
        "as the message may become clearer with time."
    ),
    symbols=[
        Symbol(
            name="The Threshold",
            interpretation=(
                "Your dream is hovering at the edge of memory, like a word on the tip of your tongue. "
                "This is your subconscious inviting you to slow down and listen more closely."
            ),
            meaning="The liminal space between knowing and not-knowing",
            shadow="Impatience with mystery, forcing meaning before its time",
            guidance="Sit with not-knowing as its own form of wisdom",
        )
    ],
    omen=(
        "Your dreaming mind is active even when memory fails to catch its gifts. "
        "This is an invitation to tend the bridge between your waking and sleeping selves with greater care. "
        "The dreams will return when you create space to receive them."
    ),
    ritual=(
        "Before sleep tonight, place your hand on your heart and speak aloud: 'I am ready to remember.' "
        "Keep paper and pen within arm's reach."
    ),
    journal_prompt="What feelings lingered when you woke, even if images did not?",
    tags=["liminal", "memory", "threshold"],
    content_warnings=[],
)


def fallback_reading() -> Reading:
    return FALLBACK_READING.model_copy(deep=True)
