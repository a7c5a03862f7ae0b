# royale/server.py
import logging
import os

from flask import Flask
from flask_socketio import SocketIO

from . import init_royale


def create_app(config=None, service_factory=None):
    app = Flask(__name__)
    app.config.from_prefixed_env()
    if config:
        app.config.update(config)
    socketio = SocketIO(app, async_mode="threading", cors_allowed_origins="*")
    init_royale(app, socketio, service_factory)
    return app, socketio


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app, socketio = create_app()
    port = int(os.environ.get("PORT", 3000))
    logging.getLogger(__name__).info("Agent Battle Royale running on http://localhost:%s", port)
    socketio.run(app, host="0.0.0.0", port=port, allow_unsafe_werkzeug=True)


if __name__ == "__main__":
    main()
