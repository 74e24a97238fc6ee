"""
AWS Lambda handler — Mangum wrapper for the VoidGuard FastAPI app.
"""

from mangum import Mangum

from voidguard.main import app

handler = Mangum(app, lifespan="off")
