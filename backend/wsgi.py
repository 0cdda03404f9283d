# backend/wsgi.py
from fifo_ledger import create_app

app = create_app()
