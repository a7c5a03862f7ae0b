# royale/sockets.py
from flask_socketio import emit, join_room, leave_room

from . import state
from .engine import events

ROOM = "royale"


def register_royale_socket_handlers(socketio):
    @socketio.on("royale_join")
    def royale_join():
        join_room(ROOM)
        emit(f"royale_{events.STATE_SYNC}", state.get_state())

    @socketio.on("royale_leave")
    def royale_leave():
        leave_room(ROOM)

    def relay(event, payload):
        socketio.emit(f"royale_{event}", payload, to=ROOM)

    state.bus.subscribe(relay)
    return relay
