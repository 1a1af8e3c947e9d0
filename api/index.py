"""
Serverless entry point.

Wraps the ASGI app for AWS Lambda style runtimes.
"""

from mangum import Mangum

from complaintdesk.main import app

handler = Mangum(app, lifespan="auto")
