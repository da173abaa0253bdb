# backend/wsgi.py
from agrimarket import create_app

app = create_app()
