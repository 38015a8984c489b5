from tito_sync.main import app

app()
