import os

from src.academic_hub.academic_hub.main import create_app

app = create_app()

if __name__ == '__main__':
    app.run(host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "5000")), debug=app.config["DEBUG"])
