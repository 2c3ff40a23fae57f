"""
Shared constants used across multiple modules.
Single source of truth for the rasi / nakshatra / moon-phase vocabularies
and the research export schema.
"""

# Sidereal signs, in zodiac order
RASIS = (
    "Mesha", "Vrishabha", "Mithuna", "Karka", "Simha", "Kanya",
    "Tula", "Vrischika", "Dhanu", "Makara", "Kumbha", "Meena",
)

NAKSHATRAS = (
    "Ashwini", "Bharani", "Krittika", "Rohini", "Mrigashira", "Ardra",
    "Punarvasu", "Pushya", "Ashlesha", "Magha", "Purva Phalguni",
    "Uttara Phalguni", "Hasta", "Chitra", "Swati", "Vishakha", "Anuradha",
    "Jyeshtha", "Mula", "Purva Ashadha", "Uttara Ashadha", "Shravana",
    "Dhanishta", "Shatabhisha", "Purva Bhadrapada", "Uttara Bhadrapada",
    "Revati",
)

MOON_PHASES = ("New Moon", "First Quarter", "Full Moon", "Last Quarter")

# Columns selected from the research_data_complete view
RESEARCH_RECORD_FIELDS = (
    "user_id", "user_birth_rasi", "user_birth_nakshatra", "entry_date",
    "mood_score", "sleep_duration", "disturbances",
    "moon_rasi", "moon_phase", "moon_degree",
)

# CSV export header, in column order
CSV_EXPORT_FIELDS = (
    "user_hash", "birth_rasi", "birth_nakshatra", "entry_date",
    "mood_score", "sleep_duration", "disturbances",
    "moon_rasi", "moon_phase", "moon_degree", "day_of_week",
)

# Insight kinds: (id, type, title)
INSIGHT_MOON_PHASE = ("moon-phase-correlation", "moon_phase", "Moon Phase Mood Correlation")
INSIGHT_RASI = ("rasi-correlation", "rasi_correlation", "Birth Rasi Transit Effects")
INSIGHT_SLEEP = ("sleep-patterns", "sleep_pattern", "Lunar Sleep Patterns")
INSIGHT_STATISTICAL = ("statistical-significance", "statistical", "Research Data Quality")

INSIGHT_TYPES = {
    "moon_phase", "rasi_correlation", "nakshatra_pattern",
    "sleep_pattern", "statistical",
}
SIGNIFICANCE_LEVELS = ("high", "medium", "low")

# Research dashboard access; extended at runtime by ADMIN_EMAILS
ADMIN_EMAILS = (
    "research-admin@example.com",
)
