"""Data normalization — converts raw source payloads into WeatherEntry objects.

Each source presents its hourly forecast differently:
  - The Weather Channel: rendered HTML, one `ExpandedDetailsCard-N` per hour
  - AccuWeather:         rendered HTML, one `div.accordion-item.hour` per hour
  - NWS:                 JSON, `properties.periods[]`

The page structure of each site is a fixed contract. A missing structural
marker (the first card, the card header, the periods list) raises ParseError
so the guard can retry. A single card or period with unreadable fields is
skipped with a warning and extraction continues.
"""

from __future__ import annotations

import re
from datetime import datetime

from bs4 import BeautifulSoup, Tag
from pydantic import ValidationError

from omnitempestas.common.logging import get_logger
from omnitempestas.common.schemas import SENTINEL, SkyStatus, WeatherEntry, WeatherSource
from omnitempestas.weather.exceptions import ParseError

logger = get_logger("WEATHER")

# AccuWeather only shows an accumulation when the chance of rain is >= 50%
ACCU_RAIN_AMOUNT_THRESHOLD = 50.0

_TIME_PATTERN = re.compile(r"^(\d{1,2})\s?(AM|PM)$", re.IGNORECASE)
_NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")

# Checked in order: the first keyword group found in the text wins
_SKY_KEYWORDS: list[tuple[tuple[str, ...], SkyStatus]] = [
    (("storm",), SkyStatus.Storm),
    (("rain", "shower"), SkyStatus.Rain),
    (("cloud",), SkyStatus.Cloudy),
    (("sun", "clear"), SkyStatus.Sunny),
]


# ─── Field Helpers ───


def convert_to_24_hour(raw_time: str) -> tuple[int, int]:
    """Convert an hourly label like "1 PM" into (hours, minutes).

    12 AM is midnight (0:00) and 12 PM is noon (12:00).

    Raises:
        ParseError: If the label is not in "H AM/PM" form.
    """
    match = _TIME_PATTERN.match(raw_time.strip())
    if not match:
        raise ParseError(f'Invalid time format "{raw_time}"')

    hours = int(match.group(1))
    period = match.group(2).lower()
    if not 1 <= hours <= 12:
        raise ParseError(f'Hour out of range in "{raw_time}"')

    if period == "pm" and hours != 12:
        hours += 12
    elif period == "am" and hours == 12:
        hours = 0

    return hours, 0


def parse_sky_status(raw_status: str) -> SkyStatus:
    """Classify free-text short forecast into a SkyStatus.

    Raises:
        ParseError: If no known keyword appears in the text.
    """
    lowered = raw_status.lower()
    for keywords, status in _SKY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return status
    raise ParseError(f'Could not parse sky status "{raw_status}"')


def parse_number(raw: str | None) -> float | None:
    """Extract the first number from display text ("72°", "40%", "0.12 in")."""
    if not raw:
        return None
    match = _NUMBER_PATTERN.search(raw)
    return float(match.group()) if match else None


def celsius_to_fahrenheit(celsius: float) -> float:
    return round(celsius * 9 / 5 + 32, 1)


def _text(node: Tag | None) -> str | None:
    if node is None:
        return None
    text = node.get_text(" ", strip=True)
    return text or None


def _by_test_id(node: Tag | None, test_id: str) -> Tag | None:
    if node is None:
        return None
    return node.select_one(f'[data-testid="{test_id}"]')


def _build_entry(source: WeatherSource, raw_time: str, fields: dict) -> WeatherEntry | None:
    """Build one entry, or None when a field value is out of range.

    ParseError from the time label or sky text is not caught: a changed
    format affects every card, so it is treated as a structural failure.
    """
    hours, minutes = convert_to_24_hour(raw_time)
    sky_status = parse_sky_status(fields.pop("raw_sky"))
    try:
        return WeatherEntry(
            source=source,
            time_hours=hours,
            time_minutes=minutes,
            sky_status=sky_status,
            **fields,
        )
    except ValidationError as exc:
        logger.warning(
            "Skipping out-of-range entry",
            extra={"data": {"source": source.label, "time": raw_time, "error": str(exc)}},
        )
        return None


# ─── The Weather Channel ───


def normalize_twc_page(html: str, max_entries: int) -> list[WeatherEntry]:
    """Parse the rendered weather.com hour-by-hour page.

    Only cards ExpandedDetailsCard-0 .. ExpandedDetailsCard-(max_entries-1)
    are examined.

    Raises:
        ParseError: If the first card is absent (page layout changed).
    """
    soup = BeautifulSoup(html, "html.parser")
    if _by_test_id(soup, "ExpandedDetailsCard-0") is None:
        raise ParseError("TWC page has no ExpandedDetailsCard-0")

    entries: list[WeatherEntry] = []
    for index in range(max_entries):
        card = _by_test_id(soup, f"ExpandedDetailsCard-{index}")
        if card is None:
            break

        raw_time = _text(_by_test_id(card, "daypartName"))
        temperature = parse_number(_text(_by_test_id(card, "TemperatureValue")))
        rain_percent = parse_number(
            _text(_by_test_id(_by_test_id(card, "Precip"), "PercentageValue"))
        )
        rain_amount = parse_number(_text(_by_test_id(card, "AccumulationValue")))
        raw_sky = _text(_by_test_id(card, "wxIcon"))

        if None in (raw_time, temperature, rain_percent, rain_amount, raw_sky):
            logger.warning(
                "Skipping TWC card with unreadable fields",
                extra={"data": {"card": index}},
            )
            continue

        entry = _build_entry(
            WeatherSource.TheWeatherChannel,
            raw_time,
            {
                "rain_percent": rain_percent,
                "rain_amount": rain_amount,
                "temperature": temperature,
                "raw_sky": raw_sky,
            },
        )
        if entry is not None:
            entries.append(entry)

    return entries


# ─── AccuWeather ───


def _accu_rain_amount(card: Tag) -> float:
    """Read the "Rain 0.12 in" detail line, defaulting to 0 when absent."""
    for line in card.select(
        "div.hourly-detailed-card-content div.hourly-content-container > div > p"
    ):
        text = _text(line)
        if text and text.lower().startswith("rain"):
            amount = parse_number(text)
            return amount if amount is not None else 0.0
    return 0.0


def normalize_accu_page(html: str, max_entries: int) -> list[WeatherEntry]:
    """Parse one rendered AccuWeather hourly page (today or ?day=2).

    Rain amount is only read when the card's chance of rain is at least
    ACCU_RAIN_AMOUNT_THRESHOLD; below it the site omits the field and the
    amount is 0, not the sentinel.

    Raises:
        ParseError: If no hourly card header is present.
    """
    soup = BeautifulSoup(html, "html.parser")
    if soup.select_one("div.hourly-detailed-card-header") is None:
        raise ParseError("AccuWeather page has no hourly card headers")

    entries: list[WeatherEntry] = []
    for index, card in enumerate(soup.select("div.accordion-item.hour")[:max_entries]):
        header = card.select_one("div.hourly-detailed-card-header")

        raw_time = _text(header.select_one("h2.date > div")) if header else None
        rain_percent = parse_number(_text(header.select_one("div.precip"))) if header else None
        temperature = parse_number(_text(header.select_one("div.temp"))) if header else None
        raw_sky = _text(header.select_one("div.phrase")) if header else None

        if None in (raw_time, rain_percent, temperature, raw_sky):
            logger.warning(
                "Skipping AccuWeather card with unreadable fields",
                extra={"data": {"card": index}},
            )
            continue

        rain_amount = 0.0
        if rain_percent >= ACCU_RAIN_AMOUNT_THRESHOLD:
            rain_amount = _accu_rain_amount(card)

        entry = _build_entry(
            WeatherSource.AccuWeather,
            raw_time,
            {
                "rain_percent": rain_percent,
                "rain_amount": rain_amount,
                "temperature": temperature,
                "raw_sky": raw_sky,
            },
        )
        if entry is not None:
            entries.append(entry)

    return entries


# ─── National Weather Service ───


def normalize_nws_hourly(raw_response: dict, max_entries: int) -> list[WeatherEntry]:
    """Normalize an NWS /forecast/hourly response.

    Hours and minutes are taken from `startTime` in the forecast location's
    own UTC offset. NWS has no hourly precipitation amount, so rain_amount
    is always SENTINEL; a null probabilityOfPrecipitation is SENTINEL too.

    Raises:
        ParseError: If properties.periods is missing or not a list.
    """
    try:
        periods = raw_response["properties"]["periods"]
    except (KeyError, TypeError) as exc:
        raise ParseError("NWS response missing properties.periods") from exc
    if not isinstance(periods, list):
        raise ParseError("NWS properties.periods is not a list")

    entries: list[WeatherEntry] = []
    for period in periods[:max_entries]:
        try:
            start_time = datetime.fromisoformat(period["startTime"])
            temperature = float(period["temperature"])
            if period.get("temperatureUnit", "F") == "C":
                temperature = celsius_to_fahrenheit(temperature)
            pop = (period.get("probabilityOfPrecipitation") or {}).get("value")
            rain_percent = float(pop) if pop is not None else SENTINEL
            short_forecast = str(period["shortForecast"])
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.warning(
                "Skipping malformed NWS period",
                extra={
                    "data": {
                        "period": period.get("number") if isinstance(period, dict) else None,
                        "error": str(exc),
                    }
                },
            )
            continue

        try:
            entry = WeatherEntry(
                source=WeatherSource.NationalWeatherService,
                time_hours=start_time.hour,
                time_minutes=start_time.minute,
                rain_percent=rain_percent,
                rain_amount=SENTINEL,
                sky_status=parse_sky_status(short_forecast),
                temperature=temperature,
            )
        except ValidationError as exc:
            logger.warning(
                "Skipping out-of-range NWS period",
                extra={"data": {"period": period.get("number"), "error": str(exc)}},
            )
            continue
        entries.append(entry)

    return entries
