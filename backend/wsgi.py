# backend/wsgi.py
from ckms import create_app

app = create_app()
