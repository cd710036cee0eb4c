import os

# Force production env if the deployment did not say otherwise
os.environ.setdefault("ENV", "production")

from foundation import create_app  # noqa: E402

app = create_app()
