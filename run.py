# Eventlet monkey patching MUST be first before any other imports
import eventlet
eventlet.monkey_patch()

import os  # noqa: E402

from predictor import create_app, db, socketio  # noqa: E402
from predictor.models import Match, Prediction, User  # noqa: E402

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "User": User,
        "Match": Match,
        "Prediction": Prediction,
        "scheduler": app.extensions["scheduler_service"],
        "simulator": app.extensions["live_simulator"],
    }


if __name__ == "__main__":
    socketio.run(
        app,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 5000)),
        debug=app.config.get("DEBUG", False),
    )
