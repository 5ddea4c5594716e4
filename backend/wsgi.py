# backend/wsgi.py
from hkinv import create_app

app = create_app()
