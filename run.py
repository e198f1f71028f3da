"""Local development entry point.

Usage:
    python run.py            # http://localhost:5005
    PORT=8080 python run.py

Tenant sites are reachable at /sites/<subdomain>. Host routing needs a
subdomain under SITE_DOMAIN, so for local testing set SITE_DOMAIN=lvh.me
and open http://demo.lvh.me:5005 (*.lvh.me resolves to 127.0.0.1).
"""

import os

from dotenv import load_dotenv

load_dotenv()  # Load .env before anything else

from app import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=True, host="0.0.0.0", port=int(os.environ.get("PORT", 5005)))
