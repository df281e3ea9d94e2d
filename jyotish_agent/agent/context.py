"""
Context Assembly
================

Builds the system instructions for one conversation from:
- The behavioural preamble (persona, citation discipline, tool rules,
  response format)
- A locale directive (which language to answer in)
- The user's profile (name, birth date, time and place)
- The chart summary: a truncated precomputed chart, or a marker telling
  the model to fetch it with tools

Assembly is a pure function of its inputs; the same assembler is safe to
reuse across requests.

Token Budget:
    The preamble is roughly 700 tokens and the chart summary is capped at
    1500 characters, leaving the rest of the window for tool results.
"""

import json

from jyotish_agent.models import ChartContext, ChartRecovered, ChartUnavailable, UserContext
from jyotish_agent.utils.logger import Logger

logger = Logger("Context")

CHART_SUMMARY_MAX_CHARS = 1500

LANGUAGES = {
    "en": "English",
    "hi": "Hindi",
    "bn": "Bengali",
    "gu": "Gujarati",
    "kn": "Kannada",
    "ml": "Malayalam",
    "mr": "Marathi",
    "pa": "Punjabi",
    "sa": "Sanskrit",
    "ta": "Tamil",
    "te": "Telugu",
}


class ContextAssembler:
    """
    Assembles the instruction text for the execution loop.

    Example:
        assembler = ContextAssembler()
        instructions = assembler.build_instructions(
            user,
            ChartUnavailable("calculation service timed out"),
        )
    """

    BASE_SYSTEM_PROMPT = """You are 'Rishi', a wise and authentic Vedic astrologer who follows traditional Jyotish principles.

CORE PRINCIPLES - FOLLOW EXACTLY:
1. ONLY use data from tool outputs combined with AUTHENTIC VEDIC texts (Brihat Parashara Hora Shastra, Jaimini Sutras, Phaladeepika, Saravali).
2. NEVER guess or make up astrological information. If you don't have the data, use the appropriate tool.
3. Always cite your sources: "Per Parashara...", "According to Jaimini...", "Phaladeepika states..."
4. Use simple language with Sanskrit terms explained: Surya=Sun, Chandra=Moon, Mangal=Mars, Budha=Mercury, Guru=Jupiter, Shukra=Venus, Shani=Saturn, Rahu=North Node, Ketu=South Node.

MANDATORY TOOL USAGE:
Questions about the user's own chart must be answered from tool results, never from memory.
- DASHA/PERIODS/MAHADASHA/ANTARDASHA -> call getDasha() (no parameters)
- BIRTH CHART/KUNDLI/PLANETS -> call getBirthChart() (no parameters)
- FUTURE/PREDICTIONS/TIMING -> call getTransits() with today's date
- MARRIAGE/RELATIONSHIPS -> call getVargaChart() with varga_num: 9
- CAREER/PROFESSION -> call getVargaChart() with varga_num: 10
- WEALTH/FINANCES -> call getVargaChart() with varga_num: 2
- YEARLY predictions -> call getVarshaphala() with the user's age
- What the classical texts say, remedies, yogas, doshas -> call searchBooks()
General questions about astrology that do not concern the user's chart may be answered directly.

TOOL ERRORS:
If a tool returns an error, you may retry it once with corrected arguments, use another tool, or answer with what you have and say what is missing.

RESPONSE FORMAT:
- Start with a warm, brief greeting
- Use bullet points for clarity
- Include relevant Vedic references
- Keep explanations simple and actionable
- End with positive guidance or remedies when appropriate

TONE:
- Compassionate and wise
- Positive and hopeful
- Scriptural and authentic

IMPORTANT:
- You have the user's birth data. NEVER ask for it again.
- Frame difficult periods positively as "karma purification" or "growth phases"
- Always provide remedies or positive actions when discussing challenges"""

    def build_instructions(self, user: UserContext, chart: ChartContext) -> str:
        """
        Build the complete instruction string.

        Args:
            user: The requesting user's profile
            chart: Precomputed chart, or why it is unavailable

        Returns:
            The system instructions for the model
        """
        sections = [
            self.BASE_SYSTEM_PROMPT,
            self.locale_directive(user.locale),
            self.profile_block(user),
            self.chart_block(chart),
        ]
        instructions = "\n\n".join(sections)
        logger.debug(f"System prompt built ({len(instructions)} chars)")
        return instructions

    @staticmethod
    def locale_directive(locale: str | None) -> str:
        code = (locale or "en").strip()
        base = code.split("-")[0].split("_")[0].lower()
        language = LANGUAGES.get(base, code)
        if base == "en":
            return "LANGUAGE: Respond in English."
        return (
            f"LANGUAGE: Respond in {language}. Keep Sanskrit astrological terms, "
            "and add the English term in brackets the first time each appears."
        )

    @staticmethod
    def profile_block(user: UserContext) -> str:
        location = user.location
        lat = "N/A" if location.lat is None else location.lat
        lon = "N/A" if location.lon is None else location.lon
        lines = [
            "USER PROFILE:",
            f"- Name: {user.name or 'Seeker'}",
            f"- Birth Date: {user.date or 'Not provided'}",
            f"- Birth Time: {user.time or 'Not provided'}",
            f"- Birth Place: {location.name or 'Unknown'} (Lat: {lat}, Lon: {lon})",
        ]
        if user.timezone:
            lines.append(f"- Timezone: {user.timezone}")
        return "\n".join(lines)

    @staticmethod
    def chart_block(chart: ChartContext) -> str:
        if isinstance(chart, ChartRecovered):
            summary = json.dumps(chart.chart, separators=(",", ":"), default=str, ensure_ascii=False)
            return f"CHART DATA (Summary): {summary[:CHART_SUMMARY_MAX_CHARS]}"

        reason = chart.reason if isinstance(chart, ChartUnavailable) else "not provided"
        return (
            f"CHART DATA: Not available ({reason}). "
            "Use tools to fetch fresh calculations when needed."
        )
