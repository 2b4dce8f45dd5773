# backend/wsgi.py
from smartbill import create_app

app = create_app()
