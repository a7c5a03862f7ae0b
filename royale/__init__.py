# royale/__init__.py
from .engine.bot import HeuristicDecisionService
from .routes import royale_bp
from .sockets import register_royale_socket_handlers


def init_royale(app, socketio, service_factory=None):
    app.extensions["royale"] = {
        "socketio": socketio,
        "service_factory": service_factory or HeuristicDecisionService,
        # ROYALE_TURN_DELAY=0 -> {"turn_delay": 0}
        "config": app.config.get_namespace("ROYALE_"),
    }
    app.register_blueprint(royale_bp)
    register_royale_socket_handlers(socketio)
