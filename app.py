"""WSGI entry point for the backlog tracker API."""

from web.app_factory import create_app

app = create_app()


if __name__ == '__main__':  # pragma: no cover - manual execution path
    app.run(host='0.0.0.0', port=5000, threaded=True)
