"""
Tests for instruction assembly.
"""

from jyotish_agent.agent.context import CHART_SUMMARY_MAX_CHARS, ContextAssembler
from jyotish_agent.models import ChartRecovered, ChartUnavailable, UserContext

from tests.fakes import BIRTH_CHART


def test_instructions_contain_every_section(user):
    instructions = ContextAssembler().build_instructions(user, ChartRecovered(BIRTH_CHART))

    assert instructions.startswith("You are 'Rishi'")
    assert "LANGUAGE: Respond in English." in instructions
    assert "- Name: Asha" in instructions
    assert "- Birth Place: New Delhi (Lat: 28.6139, Lon: 77.209)" in instructions
    assert "- Timezone: Asia/Kolkata" in instructions
    assert 'CHART DATA (Summary): {"ascendant":{"sign":"Leo"' in instructions


def test_chart_summary_is_truncated():
    chart = {"notes": "x" * 5000}

    block = ContextAssembler.chart_block(ChartRecovered(chart))

    assert len(block) == len("CHART DATA (Summary): ") + CHART_SUMMARY_MAX_CHARS


def test_unavailable_chart_explains_why():
    block = ContextAssembler.chart_block(ChartUnavailable("Calculation service timed out after 30s."))

    assert block == (
        "CHART DATA: Not available (Calculation service timed out after 30s.). "
        "Use tools to fetch fresh calculations when needed."
    )


def test_zero_coordinates_are_shown(profile):
    profile["location"] = {"lat": 0.0, "lon": 0.0}

    block = ContextAssembler.profile_block(UserContext.from_dict(profile))

    assert "(Lat: 0.0, Lon: 0.0)" in block
    assert "Birth Place: Unknown" in block


def test_locale_directive():
    assert ContextAssembler.locale_directive("hi-IN").startswith("LANGUAGE: Respond in Hindi.")
    assert ContextAssembler.locale_directive(None) == "LANGUAGE: Respond in English."
    assert "Respond in fr" in ContextAssembler.locale_directive("fr")


def test_assembly_is_deterministic(user):
    assembler = ContextAssembler()
    chart = ChartUnavailable("not provided")

    assert assembler.build_instructions(user, chart) == assembler.build_instructions(user, chart)
