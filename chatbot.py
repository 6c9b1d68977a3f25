"""
Rule-based environmental monitoring assistant.

Intent classification is plain keyword containment over the lower-cased
message, tested in a fixed priority order (first match wins). Each intent has a
handler that either returns static text or summarises the latest readings
fetched through the point / record stores.
"""

import random
from functools import wraps

from sqlalchemy.exc import SQLAlchemyError

from logger import logger
from utils import fixed, round_half_up

GREETING = "greeting"
AIR_QUALITY = "air_quality"
WATER_QUALITY = "water_quality"
LOCATION = "location"
STATISTICS = "statistics"
RECOMMENDATION = "recommendation"
TREND = "trend"
DEFAULT = "default"

# Priority order matters: a message with "hello" and "air quality" is a greeting.
INTENT_KEYWORDS = (
    (GREETING, ("hello", "hi", "hey", "good morning", "good afternoon", "good evening")),
    (AIR_QUALITY, ("air quality", "aqi", "pm2.5", "pm10", "pollution", "air pollution")),
    (WATER_QUALITY, ("water quality", "river", "marine", "lake", "ph", "dissolved oxygen", "turbidity")),
    (LOCATION, ("where", "location", "station", "monitoring point", "nearest")),
    (STATISTICS, ("statistics", "stats", "average", "mean", "total", "count", "how many")),
    (RECOMMENDATION, ("recommend", "suggest", "should i", "safe", "advice", "what can i do")),
    (TREND, ("trend", "improving", "getting worse", "change", "over time", "history")),
)

MARINE_KEYWORDS = ("marine", "bay", "lake")

GREETINGS = (
    "Hello! I'm your EnviroWatch AI assistant for Malaysia. I can help you understand environmental "
    "monitoring data, air quality, water quality across Malaysia, and provide recommendations. "
    "What would you like to know?",
    "Hi there! I'm here to help you with environmental data insights from monitoring stations across "
    "Malaysia. You can ask me about air quality in Kuala Lumpur, water quality in our rivers, or trends. "
    "How can I assist you today?",
    "Welcome to EnviroWatch Malaysia! I can provide information about environmental conditions across "
    "Malaysian cities including Kuala Lumpur, Petaling Jaya, and Shah Alam. Ask me anything about air "
    "quality, water quality, or our monitoring stations.",
)

RECOMMENDATION_TEXT = (
    "Based on current environmental conditions, here are my recommendations:\n\n"
    "**For Air Quality:**\n"
    "• Check the AQI before planning outdoor activities\n"
    "• If AQI is above 100, limit prolonged outdoor exertion\n"
    "• Consider wearing a mask in areas with high PM2.5 levels\n\n"
    "**For Water Safety:**\n"
    "• Avoid swimming in areas with poor water quality ratings\n"
    "• Check recent water quality reports before water activities\n"
    "• Report any unusual odors or colors in water bodies\n\n"
    "**General Tips:**\n"
    "• Stay informed with our real-time monitoring dashboard\n"
    "• Subscribe to alerts for your area\n"
    "• Report environmental concerns to local authorities\n\n"
    "Is there a specific recommendation you'd like more details about?"
)

TREND_TEXT = (
    "To analyze environmental trends, I can look at historical data over different time periods:\n\n"
    "**Available Trend Analysis:**\n"
    "• Daily trends (24-hour patterns)\n"
    "• Weekly trends (7-day averages)\n"
    "• Monthly trends (30-day comparisons)\n\n"
    "**What we're monitoring:**\n"
    "• Air quality is generally stable with seasonal variations\n"
    "• Water quality shows gradual improvement due to rehabilitation efforts\n"
    "• PM2.5 levels tend to increase during dry season\n\n"
    "You can view detailed trend charts on our dashboard. "
    "Which specific parameter would you like to see trends for?"
)

DEFAULT_TEXT = (
    "I understand you're asking about environmental monitoring. I can help you with:\n\n"
    "• **Air Quality** - Current AQI, PM2.5, PM10 levels and forecasts\n"
    "• **Water Quality** - pH, dissolved oxygen, and turbidity in rivers and marine areas\n"
    "• **Monitoring Stations** - Locations and status of our monitoring network\n"
    "• **Statistics** - Historical data and trends\n"
    "• **Recommendations** - Health advice based on current conditions\n\n"
    "Please rephrase your question or ask about one of these topics, and I'll provide specific information!"
)

AQI_BANDS = (
    # (upper bound inclusive, level, advice)
    (50, "Good",
     "Air quality is satisfactory, and air pollution poses little or no risk."),
    (100, "Moderate",
     "Air quality is acceptable. However, there may be a risk for some people, particularly those "
     "who are unusually sensitive to air pollution."),
    (150, "Unhealthy for Sensitive Groups",
     "Members of sensitive groups may experience health effects. The general public is less likely "
     "to be affected."),
)
AQI_UNHEALTHY = (
    "Unhealthy",
    "Everyone may begin to experience health effects. Members of sensitive groups may experience more "
    "serious health effects. Consider limiting prolonged outdoor activities.",
)

WATER_LEVEL_DETAIL = {
    "Moderate": "pH levels outside optimal range",
    "Poor": "Low dissolved oxygen levels",
}

PH_MIN, PH_MAX = 6.5, 8.5
DO_LOW, DO_HEALTHY = 5, 6


def classify_intent(message: str) -> str:
    text = (message or "").lower()
    for intent, keywords in INTENT_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return intent
    return DEFAULT


def classify_aqi(avg_aqi):
    """Return (level, health advice) for a mean AQI."""
    for upper, level, advice in AQI_BANDS:
        if avg_aqi <= upper:
            return level, advice
    return AQI_UNHEALTHY


def classify_water(ph, dissolved_oxygen) -> str:
    """'Good', 'Moderate' (pH out of range) or 'Poor' (low oxygen, wins over pH)."""
    level = "Good"
    if ph < PH_MIN or ph > PH_MAX:
        level = "Moderate"
    if dissolved_oxygen is not None and dissolved_oxygen < DO_LOW:
        level = "Poor"
    return level


def water_advice(ph, dissolved_oxygen) -> str:
    has_do = dissolved_oxygen is not None
    if PH_MIN <= ph <= PH_MAX and has_do and dissolved_oxygen >= DO_HEALTHY:
        return "Water quality parameters are within healthy ranges, indicating good conditions for aquatic life."
    if has_do and dissolved_oxygen < DO_LOW:
        return ("Dissolved oxygen levels are low, which may stress aquatic life. "
                "This could indicate pollution or eutrophication.")
    if ph < PH_MIN:
        return "Water is slightly acidic. This may affect aquatic ecosystems and could indicate pollution sources."
    if ph > PH_MAX:
        return "Water is slightly alkaline. Monitoring is recommended to ensure ecosystem balance."
    return "Water quality parameters are generally acceptable but continue monitoring is recommended."


def mean(values):
    """Mean of the non-null values, or None when there are none."""
    present = [float(v) for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)


def _fmt(value, places, unit=""):
    if value is None:
        return "N/A"
    return f"{fixed(value, places)}{unit}"


def _soft_fail(fallback):
    """Log handler failures and answer with ``fallback`` instead of raising."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(self, message):
            try:
                return fn(self, message)
            except Exception as exc:
                logger.exception(f"Chat handler {fn.__name__} failed")
                if isinstance(exc, SQLAlchemyError):
                    self.records.rollback()
                return fallback
        return wrapper
    return decorator


class ChatService:
    """
    Stateless response generator. ``points`` and ``records`` are the point and
    record stores; ``rng`` only needs a ``choice`` method and picks the greeting.
    """

    def __init__(self, points, records, rng=None):
        self.points = points
        self.records = records
        self.rng = rng or random.Random()
        self._handlers = {
            GREETING: self.greeting_response,
            AIR_QUALITY: self.air_quality_response,
            WATER_QUALITY: self.water_quality_response,
            LOCATION: self.location_response,
            STATISTICS: self.statistics_response,
            RECOMMENDATION: self.recommendation_response,
            TREND: self.trend_response,
            DEFAULT: self.default_response,
        }

    def generate_response(self, message: str, history=None) -> str:
        # history is not consulted; replies depend on the message only
        intent = classify_intent(message)
        logger.debug(f"Chat intent '{intent}' for: {(message or '')[:50]}")
        return self._handlers[intent]((message or "").lower())

    # ----------------- Handlers -----------------

    def greeting_response(self, message):
        return self.rng.choice(GREETINGS)

    @_soft_fail("I encountered an error retrieving air quality data. Please try again.")
    def air_quality_response(self, message):
        if not self.points.find_all(type="air", status="active"):
            return "I don't have any active air quality monitoring stations at the moment."

        air_records = [
            r for r in self.records.latest_for_all_points()
            if r["point_type"] == "air" and r["aqi"] is not None
        ]
        if not air_records:
            return "Air quality monitoring data is currently unavailable. Please check back later."

        avg_aqi = int(round_half_up(mean(r["aqi"] for r in air_records)))
        avg_pm25 = mean(r["pm25"] for r in air_records)
        level, advice = classify_aqi(avg_aqi)

        return (
            f"Based on current monitoring data from {len(air_records)} active air quality stations across Malaysia:\n\n"
            f"**Current Air Quality: {level}**\n"
            f"• Average AQI: {avg_aqi}\n"
            f"• Average PM2.5: {_fmt(avg_pm25, 1, ' µg/m³')}\n"
            f"• Temperature: {_fmt(air_records[0]['temperature'], 1, '°C')}\n\n"
            f"**Health Advice:** {advice}\n\n"
            "Our monitoring stations in Kuala Lumpur, Petaling Jaya, and Shah Alam are actively tracking air quality. "
            "Would you like detailed information about specific monitoring stations?"
        )

    @_soft_fail("I encountered an error retrieving water quality data. Please try again.")
    def water_quality_response(self, message):
        water_type = "marine" if any(k in message for k in MARINE_KEYWORDS) else "river"

        if not self.points.find_all(type=water_type, status="active"):
            return f"I don't have any active {water_type} water quality monitoring stations at the moment."

        water_records = [
            r for r in self.records.latest_for_all_points()
            if r["point_type"] == water_type and r["ph"] is not None
        ]
        if not water_records:
            return f"{water_type.capitalize()} water quality data is currently unavailable."

        # Assessment runs on the displayed (rounded) means
        avg_ph = float(round_half_up(mean(r["ph"] for r in water_records), 2))
        avg_do = mean(r["dissolved_oxygen"] for r in water_records)
        if avg_do is not None:
            avg_do = float(round_half_up(avg_do, 2))
        avg_turbidity = mean(r["turbidity"] for r in water_records)

        level = classify_water(avg_ph, avg_do)
        assessment = level if level == "Good" else f"{level} - {WATER_LEVEL_DETAIL[level]}"

        return (
            f"Based on current monitoring data from {len(water_records)} active {water_type} monitoring stations:\n\n"
            f"**Water Quality: {assessment}**\n"
            f"• Average pH: {fixed(avg_ph, 2)} (optimal: 6.5-8.5)\n"
            f"• Average Dissolved Oxygen: {_fmt(avg_do, 2, ' mg/L')} (healthy: >5 mg/L)\n"
            f"• Average Turbidity: {_fmt(avg_turbidity, 1, ' NTU')}\n"
            f"• Water Temperature: {_fmt(water_records[0]['temperature'], 1, '°C')}\n\n"
            f"**Assessment:** {water_advice(avg_ph, avg_do)}\n\n"
            "Would you like to know about specific monitoring locations?"
        )

    @_soft_fail("I encountered an error retrieving station information. Please try again.")
    def location_response(self, message):
        active = self.points.find_all(status="active")
        counts = {t: sum(1 for p in active if p.type == t) for t in ("air", "river", "marine")}
        return (
            f"We currently have {len(active)} active monitoring stations:\n\n"
            f"• **Air Quality Stations:** {counts['air']}\n"
            f"• **River Monitoring Stations:** {counts['river']}\n"
            f"• **Marine/Lake Monitoring Stations:** {counts['marine']}\n\n"
            "These stations are strategically located across the region to provide comprehensive environmental coverage. "
            "You can view their exact locations on our interactive map page.\n\n"
            "Would you like to know more about a specific type of monitoring station?"
        )

    @_soft_fail("I encountered an error retrieving statistics. Please try again.")
    def statistics_response(self, message):
        stats = self.records.dashboard_stats()
        avg_aqi = stats.get("avg_aqi")
        return (
            "Here are our current environmental monitoring statistics:\n\n"
            f"• **Active Monitoring Stations:** {stats.get('active_stations') or 0}\n"
            f"• **Records Collected (24h):** {stats.get('total_records') or 0}\n"
            f"• **Average AQI:** {round_half_up(avg_aqi) if avg_aqi is not None else 'N/A'}\n"
            f"• **Average PM2.5:** {_fmt(stats.get('avg_pm25'), 1, ' µg/m³')}\n"
            f"• **Good Air Quality Readings:** {stats.get('good_air_count') or 0}\n"
            f"• **Unhealthy Air Quality Readings:** {stats.get('unhealthy_air_count') or 0}\n\n"
            "These statistics are updated in real-time as new data comes in from our monitoring network."
        )

    def recommendation_response(self, message):
        return RECOMMENDATION_TEXT

    def trend_response(self, message):
        return TREND_TEXT

    def default_response(self, message):
        return DEFAULT_TEXT
