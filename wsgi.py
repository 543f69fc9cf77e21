"""
WSGI entry point for the demo site.

For gunicorn: wsgi:app
"""

from demosite import create_app

app = create_app()


if __name__ == "__main__":
    app.run()
