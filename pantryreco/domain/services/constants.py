# Query modes. Both share the same two scoring functions, only weights and base query differ.
MODE_DISCOVER = "discover"   # no text, base score = preferred-category matches
MODE_SEARCH = "search"       # fuzzy text relevance + allergen exclusion
MODE_MAKEABLE = "makeable"   # discover ranking restricted to fully available recipes

# Scoring function names (also the keys of ScoreSignals)
FN_AVAILABILITY = "availability"
FN_URGENCY = "urgency"
