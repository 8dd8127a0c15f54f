import os
import socket

import uvicorn


def get_lan_ip():
    # A UDP connect sends nothing; it only asks the OS which interface routes outward
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(("8.8.8.8", 80))
            return s.getsockname()[0]
    except OSError:
        return "127.0.0.1"


def main():
    lan_ip = get_lan_ip()
    port = int(os.getenv("PORT", "8000"))

    # TLS is terminated here only when both files are given, otherwise by a proxy in front
    cert_file = os.getenv("SSL_CERTFILE")
    key_file = os.getenv("SSL_KEYFILE")
    scheme = "https" if cert_file and key_file else "http"

    print("\n" + "=" * 60)
    print("QR LOGIN SERVER STARTING")
    print(f"LAN URL:  {scheme}://{lan_ip}:{port}")
    print(f"Local:    {scheme}://127.0.0.1:{port}")
    print("=" * 60 + "\n")

    uvicorn.run(
        "qrlogin.main:app",
        host="0.0.0.0",
        port=port,
        ssl_keyfile=key_file if scheme == "https" else None,
        ssl_certfile=cert_file if scheme == "https" else None,
        reload=os.getenv("RELOAD", "false").lower() == "true",
    )


if __name__ == "__main__":
    main()
