import random
from dataclasses import dataclass


@dataclass(frozen=True)
class Speech:
    quote: str
    author: str
    context: str = "general"


SPEECHES: tuple[Speech, ...] = (
    Speech(
        "Technology should be free and accessible to all, not locked behind paywalls "
        "or restricted by corporations.",
        "Digital Rights Advocate",
        "initial",
    ),
    Speech(
        "The best innovations happen when minds are free to explore without boundaries "
        "or limitations.",
        "Open Source Philosophy",
        "planning",
    ),
    Speech(
        "Knowledge shared is knowledge multiplied. The free exchange of ideas accelerates "
        "human progress.",
        "Information Freedom Movement",
        "implementation",
    ),
    Speech(
        "True technology empowers individuals, not enslaves them to corporate interests.",
        "Tech Liberation Front",
        "testing",
    ),
    Speech(
        "Open source is not just about code; it's about freedom, collaboration, "
        "and community.",
        "Free Software Foundation",
        "review",
    ),
    Speech(
        "The future belongs to those who make technology a tool for human liberation, "
        "not control.",
        "Digital Freedom Manifesto",
        "improvement",
    ),
    Speech(
        "Innovation flourishes in environments where information flows freely and "
        "barriers are torn down.",
        "Creative Commons Movement",
        "validation",
    ),
    Speech(
        "Technology should amplify human potential, not replace human judgment "
        "and creativity.",
        "Human-Centered AI Ethics",
        "completion",
    ),
    Speech(
        "The most powerful code is written by those who believe in the democratization "
        "of technology.",
        "Code Liberation Movement",
    ),
    Speech(
        "Free software is a matter of liberty, not price.",
        "Richard Stallman",
    ),
    Speech(
        "When code is free, innovation accelerates. When innovation accelerates, "
        "humanity progresses.",
        "Open Innovation Advocate",
    ),
    Speech(
        "The tools of creation should be in the hands of creators, not gatekeepers.",
        "Maker Movement",
    ),
    Speech(
        "The best way to predict the future is to invent it.",
        "Alan Kay",
    ),
    Speech(
        "Freedom in technology means the freedom to run, study, share, and modify "
        "software for any purpose.",
        "Free Software Foundation",
    ),
)


def speeches_for_context(context: str) -> list[Speech]:
    """Speeches tagged with ``context`` plus the general pool."""
    matching = [s for s in SPEECHES if s.context in (context, "general")]
    return matching or list(SPEECHES)


def get_random_speech(context: str = "general", rng: random.Random | None = None) -> Speech:
    return (rng or random).choice(speeches_for_context(context))


def format_speech(speech: Speech) -> str:
    return f'Motivational Thought: "{speech.quote}" - {speech.author}'
