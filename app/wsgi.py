from app.batchverify import create_app

app = create_app()
