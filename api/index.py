"""
Serverless entry point for the Helpdesk Assistant API
======================================================

Wraps the ASGI app for AWS Lambda / Vercel. The follow-up sweep has no
long-lived process to run in here, so the interval scheduler is switched
off and the sweep is triggered externally through ``POST /followup/run``.
"""
import os

os.environ.setdefault("ENVIRONMENT", "production")
os.environ.setdefault("ASSISTANT_CONFIG_PATH", "/tmp/assistant_config.yaml")
os.environ.setdefault("FOLLOWUP_SWEEP_INTERVAL", "0")

from mangum import Mangum

from helpdesk.main import app

# lifespan stays on: config, notifier and metrics are built at startup
handler = Mangum(app, lifespan="auto")
