"""
Transporte HTTPS con TLS mutuo hacia Paygent.
"""

import os
import ssl
import tempfile

import httpx
import structlog
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from paygate.adapters.paygent.telegram import PROVIDER_NAME, TelegramResponse, parse_telegram
from paygate.config import PaygentConfig
from paygate.utils.exceptions import ProtocolError, TransportError


logger = structlog.get_logger(__name__)

SANDBOX_URL = "https://sandbox.paygent.co.jp/n/card/request"
PRODUCTION_URL = "https://module.paygent.co.jp/n/card/request"

PKCS12_SUFFIXES = (".p12", ".pfx")

HEADERS = {
    "Content-Type": "text/plain; charset=UTF-8",
    "Accept": "text/plain",
}


def _load_pkcs12_chain(context: ssl.SSLContext, path: str, password: str) -> None:
    """
    Carga un bundle PKCS#12 en el contexto.

    ssl solo lee PEM desde disco: el bundle se reescribe como PEM temporal
    con la clave cifrada por la misma passphrase y se borra al terminar.
    """
    with open(path, "rb") as bundle:
        key, certificate, chain = pkcs12.load_key_and_certificates(
            bundle.read(), password.encode() if password else None
        )
    if key is None or certificate is None:
        raise ValueError(f"{path} has no private key or certificate")

    encryption = (
        serialization.BestAvailableEncryption(password.encode())
        if password
        else serialization.NoEncryption()
    )
    pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=encryption,
    )
    for cert in [certificate, *(chain or [])]:
        pem += cert.public_bytes(serialization.Encoding.PEM)

    fd, pem_path = tempfile.mkstemp(suffix=".pem")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(pem)
        context.load_cert_chain(pem_path, password=password or None)
    finally:
        os.unlink(pem_path)


def build_ssl_context(config: PaygentConfig) -> ssl.SSLContext:
    """
    Carga el material TLS una sola vez.

    Verifica al servidor contra el bundle de CA y se identifica con el
    certificado de cliente: PEM con clave cifrada, o PKCS#12 (.p12/.pfx),
    ambos desbloqueados con cert_password.

    Raises:
        TransportError: Si los archivos no existen o la clave no se descifra
    """
    password = config.cert_password.get_secret_value()
    try:
        context = ssl.create_default_context(cafile=config.ca_file_path)
        if config.client_file_path.lower().endswith(PKCS12_SUFFIXES):
            _load_pkcs12_chain(context, config.client_file_path, password)
        else:
            context.load_cert_chain(config.client_file_path, password=password)
    except (OSError, ssl.SSLError, ValueError) as e:
        raise TransportError(PROVIDER_NAME, f"cannot load TLS material: {e}") from e
    return context


class TelegramTransport:
    """
    Envía telegramas por HTTPS POST.

    Cada envío abre un cliente nuevo (handshake TLS nuevo, sin pooling) con
    timeouts acotados. No hay reintentos: cualquier fallo sube como
    TransportError y el llamador decide.
    """

    def __init__(
        self,
        config: PaygentConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            config: Configuración del adapter
            transport: Transporte httpx alternativo (tests, proxies). Si se
                pasa, no se carga el material TLS.
        """
        self.endpoint = PRODUCTION_URL if config.production_mode else SANDBOX_URL
        self._transport = transport
        self._timeout = httpx.Timeout(
            config.read_timeout,
            connect=config.connect_timeout,
            pool=config.connect_timeout,
        )
        self._ssl_context = build_ssl_context(config) if transport is None else None

    async def send(self, body: bytes) -> TelegramResponse:
        """
        Envía un telegrama codificado y decodifica la respuesta.

        Raises:
            TransportError: Fallo de red, TLS o timeout
            ProtocolError: Respuesta HTTP no exitosa o ilegible
        """
        client_kwargs = {"timeout": self._timeout}
        if self._transport is not None:
            client_kwargs["transport"] = self._transport
        else:
            client_kwargs["verify"] = self._ssl_context

        try:
            async with httpx.AsyncClient(**client_kwargs) as client:
                response = await client.post(self.endpoint, content=body, headers=HEADERS)
        except httpx.TimeoutException as e:
            logger.error("Paygent request timed out", endpoint=self.endpoint, error=str(e))
            raise TransportError(PROVIDER_NAME, f"timeout: {e}") from e
        except httpx.HTTPError as e:
            logger.error("Paygent request failed", endpoint=self.endpoint, error=str(e))
            raise TransportError(PROVIDER_NAME, str(e)) from e

        if response.status_code != 200:
            raise ProtocolError(
                PROVIDER_NAME,
                f"unexpected HTTP status {response.status_code}",
                raw=response.text,
            )

        return parse_telegram(response.content)
