from app.kothler import create_app

app = create_app()
