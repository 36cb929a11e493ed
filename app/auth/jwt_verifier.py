"""JWT Token Verification"""
import requests
from jose import jwt
from typing import Dict, Optional


class JWTVerifier:
    """Verifies Keycloak-issued JWTs against the realm JWKS"""

    def __init__(self, keycloak_url: str, realm: str, algorithm: str = "RS256", timeout: float = 5.0):
        self.keycloak_url = keycloak_url
        self.realm = realm
        self.algorithm = algorithm
        self.timeout = timeout
        self.jwks_url = f"{keycloak_url}/realms/{realm}/protocol/openid-connect/certs"
        self.issuer = f"{keycloak_url}/realms/{realm}"
        self._jwks_cache: Optional[Dict] = None

    def _get_jwks(self) -> Dict:
        """Fetch JWKS from Keycloak (cached after the first call)"""
        if self._jwks_cache is None:
            response = requests.get(self.jwks_url, timeout=self.timeout)
            response.raise_for_status()
            self._jwks_cache = response.json()
        return self._jwks_cache

    def verify_and_decode(self, token: str) -> Dict:
        """
        Verify JWT token signature and decode payload

        Raises:
            JWTError: Token is invalid or expired
        """
        return jwt.decode(
            token,
            self._get_jwks(),
            algorithms=[self.algorithm],
            issuer=self.issuer,
            options={
                "verify_aud": False  # service accounts carry no audience
            },
        )
