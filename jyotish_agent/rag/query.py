"""
Book Query Construction
=======================

Builds the single composite query sent to the grounded-answer call.

The query combines, in order:

    User: <name>                       (when known)
    Question: <the question, verbatim>
    Focus: <topic>                     (when given)
    Astrological Context: <digest>     (when a calculation has run)

The digest condenses the most recent calculation result into a line of
facts the books can be searched against ("Current Mahadasha: Jupiter,
Current Antardasha: Saturn"). Every digest, whatever tool produced it,
is cut to the same character cap.
"""

import json
from dataclasses import dataclass
from typing import Any, Callable

from jyotish_agent.tools.descriptions import (
    GET_BIRTH_CHART,
    GET_DASHA,
    GET_TRANSITS,
    GET_VARGA_CHART,
    GET_VARSHAPHALA,
)
from jyotish_agent.utils.logger import Logger

logger = Logger("QueryBuilder")

DEFAULT_DIGEST_MAX_CHARS = 400
_KEY_PLANETS = 5


@dataclass(frozen=True)
class QueryContext:
    """
    Inputs to one book query.

    Attributes:
        question: The question as the model phrased it
        user_name: The user's name, if known
        topic: Optional focus (remedies, yogas, doshas, ...)
        tool_name: Name of the tool that produced tool_data
        tool_data: The latest calculation result
    """
    question: str
    user_name: str | None = None
    topic: str | None = None
    tool_name: str | None = None
    tool_data: dict[str, Any] | None = None


def truncate(text: str, max_chars: int) -> str:
    """Cut text to max_chars, marking the cut with an ellipsis."""
    if max_chars <= 0:
        return ""
    if len(text) <= max_chars:
        return text
    return text[: max(0, max_chars - 3)].rstrip() + "..."


def _sign_of(value: Any) -> str:
    if isinstance(value, dict):
        return str(value.get("sign") or "")
    return str(value or "")


def _birth_chart_digest(data: dict) -> str:
    parts = []
    if data.get("ascendant"):
        parts.append(f"Ascendant: {_sign_of(data['ascendant'])}")

    planets = data.get("planets")
    if isinstance(planets, dict) and planets:
        described = []
        for name, info in list(planets.items())[:_KEY_PLANETS]:
            info = info if isinstance(info, dict) else {}
            described.append(f"{name} in {info.get('sign', '')} (House {info.get('house', '')})")
        parts.append("Key Planets: " + ", ".join(described))

    return ". ".join(parts)


def _dasha_digest(data: dict) -> str:
    labels = (
        ("current_mahadasha", "Current Mahadasha"),
        ("current_antardasha", "Current Antardasha"),
        ("current_pratyantardasha", "Current Pratyantardasha"),
    )
    return ", ".join(f"{label}: {data[key]}" for key, label in labels if data.get(key))


def _transit_digest(data: dict) -> str:
    planets = data.get("transiting_planets")
    if not isinstance(planets, dict):
        return ""
    return ", ".join(
        f"{name} transiting {_sign_of(info)}"
        for name, info in list(planets.items())[:_KEY_PLANETS]
    )


def _varga_digest(data: dict) -> str:
    parts = []
    if data.get("varga_type"):
        parts.append(f"Varga: {data['varga_type']}")
    if data.get("ascendant"):
        parts.append(f"Varga Ascendant: {_sign_of(data['ascendant'])}")
    return ". ".join(parts)


def _varshaphala_digest(data: dict) -> str:
    parts = []
    if data.get("muntha"):
        parts.append(f"Muntha: {_sign_of(data['muntha'])}")
    if data.get("year_lord"):
        parts.append(f"Year Lord: {data['year_lord']}")
    return ". ".join(parts)


_DIGESTERS: dict[str, Callable[[dict], str]] = {
    GET_BIRTH_CHART: _birth_chart_digest,
    GET_DASHA: _dasha_digest,
    GET_TRANSITS: _transit_digest,
    GET_VARGA_CHART: _varga_digest,
    GET_VARSHAPHALA: _varshaphala_digest,
}


def extract_digest(tool_name: str, data: dict, max_chars: int = DEFAULT_DIGEST_MAX_CHARS) -> str:
    """
    Condense a calculation result into a short line of facts.

    Unknown tools fall back to compact JSON. The result never exceeds
    max_chars.
    """
    digester = _DIGESTERS.get(tool_name)
    try:
        if digester is None:
            digest = json.dumps(data, separators=(",", ":"), default=str, ensure_ascii=False)
        else:
            digest = digester(data)
    except (TypeError, ValueError, AttributeError) as e:
        logger.warning(f"Could not digest {tool_name} output: {e}")
        return ""
    return truncate(digest, max_chars)


def build_query(context: QueryContext, digest_max_chars: int = DEFAULT_DIGEST_MAX_CHARS) -> str:
    """
    Build the composite query for a grounded book search.

    Example:
        build_query(QueryContext(
            question="What remedies help during Saturn antardasha?",
            user_name="Asha",
            tool_name="getDasha",
            tool_data={"current_mahadasha": "Jupiter", "current_antardasha": "Saturn"},
        ))
        # User: Asha
        #
        # Question: What remedies help during Saturn antardasha?
        #
        # Astrological Context: Current Mahadasha: Jupiter, Current Antardasha: Saturn
    """
    parts = []
    if context.user_name:
        parts.append(f"User: {context.user_name}")

    parts.append(f"Question: {context.question}")

    if context.topic:
        parts.append(f"Focus: {context.topic}")

    if context.tool_name and context.tool_data:
        digest = extract_digest(context.tool_name, context.tool_data, digest_max_chars)
        if digest:
            parts.append(f"Astrological Context: {digest}")

    query = "\n\n".join(parts)
    logger.debug(f"Built book query ({len(query)} chars)")
    return query


def build_retrieval_system_prompt(user_name: str | None = None) -> str:
    """Instructions for the grounded-answer call."""
    helping = f"You are helping: {user_name}\n\n" if user_name else ""
    return f"""You are an expert Vedic Astrology assistant with deep knowledge from classical texts.

Your role is to:
1. Search the indexed astrology books for relevant information
2. Provide accurate, text-based answers grounded in the source material
3. Connect the theoretical knowledge with the user's specific astrological context

{helping}CRITICAL INSTRUCTIONS:
- Base your answers ONLY on the content from the indexed books
- Quote relevant passages when possible
- If the books don't contain relevant information, say so clearly
- Connect classical knowledge with modern interpretations when appropriate

RESPONSE STRUCTURE:
1. **Key Insight** - Main answer from the texts
2. **Classical Reference** - Quote or reference from source
3. **Practical Application** - How this applies to the user's situation
"""
