"""Real-world weather fetching from openweathermap.org.

Fetched weather is classified into a WeatherState and kept in a cache keyed by
city name. A failed fetch never removes or replaces the previous entry, so the
cache always holds the last known good weather for a city.
"""

import asyncio
import logging
from collections.abc import Iterable

import httpx

from worldsync.app.core.config import settings
from worldsync.app.services.weather import WeatherState, classify

logger = logging.getLogger(__name__)

SECRET_MASK = "*****"


def mask_secret(text: str, secret: str) -> str:
    """Replace every occurrence of secret in text."""
    if not secret:
        return text
    return text.replace(secret, SECRET_MASK)


def parse_weather_main(data: object) -> str | None:
    """Extract ``weather[0].main`` from a current weather document.

    Returns:
        The short weather description, or None if the document has another shape.
    """
    if not isinstance(data, dict):
        return None
    weather = data.get("weather")
    if not isinstance(weather, list) or not weather:
        return None
    first = weather[0]
    if not isinstance(first, dict):
        return None
    main = first.get("main")
    return main if isinstance(main, str) else None


class WeatherCache:
    """Last known weather per city. Cities never fetched read as CLEAR."""

    def __init__(self):
        self._weather: dict[str, WeatherState] = {}

    def get(self, city: str) -> WeatherState:
        return self._weather.get(city, WeatherState.CLEAR)

    def put(self, city: str, state: WeatherState) -> None:
        self._weather[city] = state

    def update(self, fetched: dict[str, WeatherState]) -> None:
        self._weather.update(fetched)

    def __contains__(self, city: str) -> bool:
        return city in self._weather

    def snapshot(self) -> dict[str, WeatherState]:
        return dict(self._weather)

    def clear(self) -> None:
        self._weather.clear()


class WeatherFetcher:
    """Fetches current weather for cities and refreshes a WeatherCache."""

    def __init__(
        self,
        cache: WeatherCache,
        api_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the fetcher.

        Args:
            cache: The cache successful fetches are committed to
            api_url: Current weather endpoint, defaults to settings.weather_api_url
            timeout: Request timeout in seconds, defaults to settings.weather_request_timeout
            transport: Optional httpx transport (used by tests)
        """
        self.cache = cache
        self.api_url = api_url or settings.weather_api_url
        self.timeout = timeout if timeout is not None else settings.weather_request_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                limits=httpx.Limits(
                    max_keepalive_connections=5,
                    max_connections=10,
                    keepalive_expiry=30.0,
                ),
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_city(self, api_key: str, city: str) -> WeatherState | None:
        """Fetch and classify the current weather of one city.

        Returns:
            The classified weather, or None if nothing usable came back.
        """
        try:
            client = await self._get_client()
            response = await client.get(self.api_url, params={"q": city, "appid": api_key})
        except httpx.TimeoutException:
            logger.warning("Weather request for %s timed out after %ss", city, self.timeout)
            return None
        except httpx.HTTPError as e:
            logger.warning("Weather request for %s failed: %s", city, mask_secret(str(e), api_key))
            return None

        if response.status_code != 200:
            logger.warning("Weather request for %s returned HTTP %s", city, response.status_code)
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning("Weather response for %s was not valid JSON", city)
            return None

        main = parse_weather_main(data)
        if main is None:
            logger.warning("Weather response for %s has no weather description", city)
            return None

        state = classify(main)
        logger.debug("Weather for %s: %s -> %s", city, main, state.value)
        return state

    async def refresh(self, api_key: str, cities: Iterable[str]) -> dict[str, WeatherState | None]:
        """Fetch the weather of every distinct non-empty city and update the cache.

        Cities whose fetch fails keep their cached weather.

        Returns:
            The fetch outcome per city (None for failures).
        """
        if not api_key:
            return {}

        unique_cities = list(dict.fromkeys(city for city in cities if city))
        if not unique_cities:
            return {}

        results = await asyncio.gather(
            *(self.fetch_city(api_key, city) for city in unique_cities),
            return_exceptions=True,
        )

        outcome: dict[str, WeatherState | None] = {}
        for city, result in zip(unique_cities, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning("Weather fetch for %s raised: %s", city, mask_secret(str(result), api_key))
                result = None
            outcome[city] = result

        # Commit in one step once every request has finished
        self.cache.update({city: state for city, state in outcome.items() if state is not None})

        fetched = sum(1 for state in outcome.values() if state is not None)
        logger.info("Fetched weather for %d of %d cities", fetched, len(unique_cities))
        return outcome
