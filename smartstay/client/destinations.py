from typing import Optional

DEFAULT_COUNTRY = "US"

# City name -> ISO-2 country code, for destinations typed without a country
CITY_COUNTRY_CODES = {
    # United States
    "new york": "US", "los angeles": "US", "chicago": "US", "houston": "US",
    "san francisco": "US", "seattle": "US", "boston": "US", "miami": "US",
    "las vegas": "US", "orlando": "US", "washington": "US", "austin": "US",
    # United Kingdom
    "london": "GB", "manchester": "GB", "edinburgh": "GB", "glasgow": "GB",
    "liverpool": "GB", "birmingham": "GB", "bristol": "GB",
    # India
    "mumbai": "IN", "delhi": "IN", "new delhi": "IN", "bangalore": "IN",
    "bengaluru": "IN", "hyderabad": "IN", "chennai": "IN", "kolkata": "IN",
    "pune": "IN", "jaipur": "IN", "goa": "IN", "ahmedabad": "IN",
    # Europe
    "paris": "FR", "nice": "FR", "lyon": "FR", "marseille": "FR",
    "berlin": "DE", "munich": "DE", "frankfurt": "DE", "hamburg": "DE",
    "madrid": "ES", "barcelona": "ES", "seville": "ES", "valencia": "ES",
    "rome": "IT", "milan": "IT", "florence": "IT", "venice": "IT", "naples": "IT",
    "amsterdam": "NL", "brussels": "BE", "zurich": "CH", "geneva": "CH",
    "vienna": "AT", "copenhagen": "DK", "stockholm": "SE", "oslo": "NO",
    "dublin": "IE", "lisbon": "PT", "porto": "PT", "athens": "GR",
    "prague": "CZ", "budapest": "HU", "istanbul": "TR",
    # Asia-Pacific
    "tokyo": "JP", "osaka": "JP", "kyoto": "JP", "singapore": "SG",
    "hong kong": "HK", "shanghai": "CN", "beijing": "CN", "seoul": "KR",
    "bangkok": "TH", "phuket": "TH", "bali": "ID", "jakarta": "ID",
    "manila": "PH", "kuala lumpur": "MY", "hanoi": "VN", "ho chi minh": "VN",
    # Middle East
    "dubai": "AE", "abu dhabi": "AE", "doha": "QA", "riyadh": "SA",
    "tel aviv": "IL",
    # Americas
    "toronto": "CA", "vancouver": "CA", "montreal": "CA",
    "mexico city": "MX", "cancun": "MX", "buenos aires": "AR",
    "sao paulo": "BR", "rio de janeiro": "BR", "lima": "PE", "bogota": "CO",
    # Oceania
    "sydney": "AU", "melbourne": "AU", "brisbane": "AU", "perth": "AU",
    "auckland": "NZ",
    # Africa
    "cairo": "EG", "cape town": "ZA", "johannesburg": "ZA", "nairobi": "KE",
    "marrakech": "MA", "casablanca": "MA",
}


def city_country_code(city_name: Optional[str]) -> Optional[str]:
    """ISO-2 country code for a city name; exact match first, then substring."""
    if not city_name:
        return None

    city = city_name.lower().strip()
    if city in CITY_COUNTRY_CODES:
        return CITY_COUNTRY_CODES[city]

    # "Mumbai, Maharashtra" or "central london"; longest name wins ("venice" over "nice")
    for known in sorted(CITY_COUNTRY_CODES, key=len, reverse=True):
        if known in city:
            return CITY_COUNTRY_CODES[known]
    return DEFAULT_COUNTRY
