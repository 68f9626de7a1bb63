from src.app_factory import create_app


if __name__ == "__main__":
    """
    Dedicated entrypoint for the clinic scheduling API and admin dashboard.
    """
    app = create_app()
    app.run(host="0.0.0.0", port=5001, debug=app.config.get("DEBUG", False))
