"""
Run the API with uvicorn: `python -m signup_api`.
TLS is enabled when SSL_CERTFILE and SSL_KEYFILE are set.
"""

import uvicorn

from signup_api.core.config import get_settings


def main() -> None:
    settings = get_settings()
    tls = {}
    if settings.SSL_CERTFILE and settings.SSL_KEYFILE:
        tls = {
            "ssl_certfile": settings.SSL_CERTFILE,
            "ssl_keyfile": settings.SSL_KEYFILE,
            "ssl_ca_certs": settings.SSL_CA_CERTS,
        }
    uvicorn.run(
        "signup_api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,
        **tls,
    )


if __name__ == "__main__":
    main()
