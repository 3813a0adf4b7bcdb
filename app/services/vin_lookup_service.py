import requests
import logging
from typing import Dict, Any, Optional

from app.services.vehicle_resolution.errors import UpstreamError
from app.utils.settings import Settings

logger = logging.getLogger(__name__)

USER_AGENT = 'vin-resolver/1.0'


class VinLookupService:
    """
    A service to decode a VIN into a raw row of vehicle fields.

    Uses the NHTSA vPIC API by default, or a custom decoder exposing
    GET {VIN_DECODER_URL}/decode?vin=... when VIN_DECODER_PROVIDER=custom.
    """
    BASE_URL = "https://vpic.nhtsa.dot.gov/api/vehicles/DecodeVinValuesExtended/"
    SUPPORTED_PROVIDERS = ('nhtsa', 'custom')

    def __init__(self, settings: Settings):
        if settings.decoder_provider not in self.SUPPORTED_PROVIDERS:
            raise ValueError(
                f"Unsupported decoder provider: {settings.decoder_provider}. "
                f"Supported providers: {list(self.SUPPORTED_PROVIDERS)}"
            )
        if settings.decoder_provider == 'custom' and not settings.decoder_url:
            raise ValueError("VIN_DECODER_URL must be set when VIN_DECODER_PROVIDER=custom")

        self.provider = settings.decoder_provider
        self.decoder_url = (settings.decoder_url or '').rstrip('/')
        self.decoder_key = settings.decoder_key
        self.timeout = settings.http_timeout_ms / 1000.0

    def lookup_vin(self, vin: str) -> Dict[str, Any]:
        """
        Decode a VIN and return the provider's row of named fields.

        Args:
            vin (str): A validated, uppercased 17-character VIN.

        Returns:
            Dict[str, Any]: The raw row, empty when the provider returned no rows.

        Raises:
            UpstreamError: On timeouts, connection failures, non-2xx statuses or unreadable bodies.
        """
        if self.provider == 'custom':
            endpoint_url = f"{self.decoder_url}/decode"
            params = {'vin': vin}
            headers = {'User-Agent': USER_AGENT}
            if self.decoder_key:
                headers['Authorization'] = f'Bearer {self.decoder_key}'
        else:
            endpoint_url = f"{self.BASE_URL}{vin}"
            params = {'format': 'json'}
            headers = {'User-Agent': USER_AGENT}

        try:
            logger.info(f"Sending VIN lookup request to: {endpoint_url}")
            response = requests.get(endpoint_url, params=params, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            logger.info(f"VIN lookup successful. Status Code: {response.status_code}")
            data = response.json()

        except requests.exceptions.Timeout:
            logger.error(f"Request to {endpoint_url} timed out.")
            raise UpstreamError(f"VIN decoder timed out after {self.timeout:g}s")
        except requests.exceptions.ConnectionError:
            logger.error(f"Connection error when sending to {endpoint_url}. Check URL and network.")
            raise UpstreamError("VIN decoder unreachable")
        except requests.exceptions.HTTPError as http_err:
            status = http_err.response.status_code if http_err.response is not None else None
            logger.error(f"HTTP error occurred: {http_err}")
            raise UpstreamError(f"VIN decoder error: {status}", status_code=status)
        except requests.exceptions.RequestException as e:
            logger.error(f"An unexpected request error occurred: {e}")
            raise UpstreamError(f"VIN decoder request failed: {e}")
        except ValueError:
            logger.error(f"VIN decoder returned a non-JSON body for {vin}")
            raise UpstreamError("VIN decoder returned an unreadable response")

        return self._extract_row(data)

    def _extract_row(self, data: Any) -> Dict[str, Any]:
        """vPIC wraps the row in Results[0]; custom decoders may return it bare."""
        if not isinstance(data, dict):
            return {}
        results: Optional[Any] = data.get('Results')
        if results is None:
            return data
        if isinstance(results, list) and results and isinstance(results[0], dict):
            return results[0]
        return {}
