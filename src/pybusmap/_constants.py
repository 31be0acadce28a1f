"""Internal constants shared across the library."""

USER_AGENT = "pybusmap/1.0"

#: Feed endpoint served by the backend proxy.
FEED_PATH = "/api/buses"

#: Fixed refresh period of the feed poller, in seconds.
POLL_INTERVAL_S = 10.0

#: Vehicles at or within this distance of the viewer are "nearby".
NEARBY_THRESHOLD_KM = 5.0

#: Mean Earth radius used by the haversine formula.
EARTH_RADIUS_KM = 6371.0

# Sydney CBD, used when the viewer position cannot be determined.
FALLBACK_LATITUDE = -33.8688
FALLBACK_LONGITUDE = 151.2093

LOCATION_TIMEOUT_S = 10.0

GEOLOCATION_URL = "http://ip-api.com/json/"
