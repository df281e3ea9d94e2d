"""Descriptions shown to the model to steer tool selection."""

GET_TRANSITS = "getTransits"
GET_VARGA_CHART = "getVargaChart"
GET_VARSHAPHALA = "getVarshaphala"
GET_DASHA = "getDasha"
GET_BIRTH_CHART = "getBirthChart"
SEARCH_BOOKS = "searchBooks"

CALCULATION_TOOLS = (GET_TRANSITS, GET_VARGA_CHART, GET_VARSHAPHALA, GET_DASHA, GET_BIRTH_CHART)

TOOL_DESCRIPTIONS: dict[str, str] = {
    GET_TRANSITS: """Calculate planetary transits for future predictions, current planetary positions, and timing analysis.
Use this tool when the user asks about:
- Future predictions or forecasts
- Current planetary influences
- What's happening in their life now
- Upcoming events or changes
- "What does my future look like?"
- Transit effects on their birth chart""",

    GET_VARGA_CHART: """Calculate divisional charts (Varga) for in-depth analysis of specific life areas.
Use this tool when the user asks about:
- Marriage, relationships, spouse (use varga_num: 9 - Navamsa)
- Career, profession, fame (use varga_num: 10 - Dasamsa)
- Wealth, financial matters (use varga_num: 2 - Hora)
- Children, creativity (use varga_num: 7 - Saptamsa)
- Parents, lineage (use varga_num: 12 - Dwadasamsa)
- Education, learning (use varga_num: 24 - Siddhamsa)
- Spirituality, dharma (use varga_num: 20 - Vimsamsa)""",

    GET_VARSHAPHALA: """Calculate annual solar return chart (Varshaphala/Tajika) for yearly predictions.
Use this tool when the user asks about:
- This year's predictions
- Birthday to birthday forecast
- What will happen in my Nth year
- Annual horoscope""",

    GET_DASHA: """Calculate Vimshottari Dasha periods to understand current and upcoming planetary time periods. No parameters needed - automatically uses the user's birth data.
Use this tool when the user asks about:
- Current dasha/mahadasha/antardasha
- Planetary periods affecting them
- "Which planet is ruling my life now?"
- Timing of events, life phases and transitions
Just call this tool directly without any parameters.""",

    GET_BIRTH_CHART: """Get the birth chart (Kundli/Rashi chart) with planetary positions and house placements. No parameters needed - automatically uses the user's birth data.
Use this tool when the user asks about:
- Their birth chart or kundli
- Planetary positions and house placements
- Ascendant (Lagna)
- "What does my chart say?"
Just call this tool directly without any parameters.""",

    SEARCH_BOOKS: """Search the indexed classical astrology books (Brihat Parashara Hora Shastra, Jaimini Sutras, Phaladeepika, Saravali and others) for a grounded answer.
Use this tool when the user asks about:
- What the classical texts say about a placement, yoga or dosha
- Remedies and their scriptural basis
- Meanings of planets, houses, signs and nakshatras
Call the calculation tools first when the question is about the user's own chart; their results are added to the search automatically.""",
}
