from .server import app

app()
