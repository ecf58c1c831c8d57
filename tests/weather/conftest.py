"""Shared fixtures for weather module tests.

Provides trimmed-down copies of the rendered weather.com and AccuWeather
hourly pages, plus an NWS /forecast/hourly JSON response, keeping only
the markup the normalizers read.
"""

from __future__ import annotations

import pytest


def _twc_card(index: int, time: str, temp: str, precip: str, amount: str, sky: str) -> str:
    return f"""
    <details data-testid="ExpandedDetailsCard-{index}">
      <summary>
        <h3 data-testid="daypartName">{time}</h3>
        <div data-testid="ConditionsSummary">
          <span data-testid="TemperatureValue">{temp}</span>
          <svg data-testid="wxIcon"><title>{sky}</title></svg>
        </div>
        <div data-testid="Precip">
          <span data-testid="PercentageValue">{precip}</span>
        </div>
      </summary>
      <div data-testid="DetailsTable">
        <span data-testid="AccumulationValue">{amount}</span>
      </div>
    </details>
    """


def _accu_card(time: str, precip: str, temp: str, phrase: str, rain_line: str | None) -> str:
    details = ""
    if rain_line is not None:
        details = f"""
        <div class="hourly-detailed-card-content">
          <div class="hourly-content-container">
            <div><p>Wind NW 7 mph</p><p>{rain_line}</p></div>
          </div>
        </div>
        """
    return f"""
    <div class="accordion-item hour">
      <div class="hourly-detailed-card-header">
        <h2 class="date"><div>{time}</div></h2>
        <div class="temp metric">{temp}</div>
        <div class="phrase">{phrase}</div>
        <div class="precip">{precip}</div>
      </div>
      {details}
    </div>
    """


# ─── The Weather Channel ───


@pytest.fixture
def twc_html() -> str:
    """Three hourly cards: a rainy afternoon hour, a cloudy one, and midnight."""
    cards = "".join(
        [
            _twc_card(0, "1 pm", "72°", "40%", "0.12 in", "Rain Showers"),
            _twc_card(1, "2 pm", "70°", "10%", "0 in", "Mostly Cloudy"),
            _twc_card(2, "12 am", "61°", "0%", "0 in", "Clear Night"),
        ]
    )
    return f"<html><body><main>{cards}</main></body></html>"


@pytest.fixture
def twc_html_missing_field() -> str:
    """Card 1 has no temperature; cards 0 and 2 are complete."""
    cards = "".join(
        [
            _twc_card(0, "1 pm", "72°", "40%", "0.12 in", "Rain"),
            _twc_card(1, "2 pm", "--", "10%", "0 in", "Cloudy"),
            _twc_card(2, "3 pm", "68°", "5%", "0 in", "Sunny"),
        ]
    )
    return f"<html><body>{cards}</body></html>"


# ─── AccuWeather ───


@pytest.fixture
def accu_html() -> str:
    """Three cards around the 50% rain-amount threshold."""
    cards = "".join(
        [
            _accu_card("1 PM", "55%", "72°", "Thunderstorms", "Rain 0.15 in"),
            _accu_card("2 PM", "20%", "71°", "Partly sunny", "Rain 0.05 in"),
            _accu_card("3 PM", "60%", "69°", "Showers", None),
        ]
    )
    return f"<html><body><div class='hourly-wrapper'>{cards}</div></body></html>"


# ─── NWS ───


@pytest.fixture
def nws_hourly_response() -> dict:
    """A dict mimicking NWS /gridpoints/{o}/{x},{y}/forecast/hourly.

    The third period reports Celsius and has a null chance of rain.
    """
    return {
        "properties": {
            "units": "us",
            "periods": [
                {
                    "number": 1,
                    "startTime": "2026-10-17T13:00:00-04:00",
                    "endTime": "2026-10-17T14:00:00-04:00",
                    "isDaytime": True,
                    "temperature": 68,
                    "temperatureUnit": "F",
                    "probabilityOfPrecipitation": {"unitCode": "wmoUnit:percent", "value": 20},
                    "shortForecast": "Partly Sunny",
                },
                {
                    "number": 2,
                    "startTime": "2026-10-17T14:00:00-04:00",
                    "endTime": "2026-10-17T15:00:00-04:00",
                    "isDaytime": True,
                    "temperature": 66,
                    "temperatureUnit": "F",
                    "probabilityOfPrecipitation": {"unitCode": "wmoUnit:percent", "value": 70},
                    "shortForecast": "Chance Showers And Thunderstorms",
                },
                {
                    "number": 3,
                    "startTime": "2026-10-17T15:00:00-04:00",
                    "endTime": "2026-10-17T16:00:00-04:00",
                    "isDaytime": True,
                    "temperature": 20,
                    "temperatureUnit": "C",
                    "probabilityOfPrecipitation": {"unitCode": "wmoUnit:percent", "value": None},
                    "shortForecast": "Mostly Cloudy",
                },
            ],
        }
    }
