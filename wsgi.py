"""WSGI entry point for Gunicorn."""
import logging
import sys
import os

# Ensure the project directory is in the Python path
sys.path.insert(0, os.path.dirname(__file__))

from portal import create_app

logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO'),
    format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
)

# Create the application instance
app = create_app()

if __name__ == "__main__":
    app.run()
