# backend/wsgi.py
from supermart import create_app

app = create_app()
