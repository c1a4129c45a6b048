"""Flask application factory for the py-sched web API.

The ``create_app`` function returns a Flask app with two endpoints:

- ``GET /api/strategies``: list strategy names and display names.
- ``POST /api/simulate``: run a configuration document and return the
  timeline, finish ticks and event log as JSON.
"""

from __future__ import annotations

from flask import Flask, Response, jsonify, request

from py_sched.config import ConfigError, SimulationConfig
from py_sched.simulator import Simulation, SimulationError
from py_sched.strategies import available_strategies

_HTTP_BAD_REQUEST = 400
_HTTP_UNPROCESSABLE = 422


def create_app() -> Flask:
    """Create and configure the Flask application.

    Returns:
        A configured Flask application ready to serve.

    """
    app = Flask(__name__)

    @app.route("/api/strategies")
    def strategies() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return every selectable strategy.

        Returns:
            JSON list of ``{"name", "display_name"}`` objects.

        """
        return jsonify(
            [{"name": b.name, "display_name": b.display_name} for b in available_strategies()],
        )

    @app.route("/api/simulate", methods=["POST"])
    def simulate() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Run a simulation and return its result.

        Expects a configuration document as the JSON body.

        Returns:
            JSON with ``strategy``, ``timeline``, ``finish_ticks``,
            ``context_switches`` and ``log`` fields.

        """
        data = request.get_json(silent=True)
        if data is None:
            return jsonify({"error": "Missing JSON body"}), _HTTP_BAD_REQUEST

        try:
            config = SimulationConfig.from_dict(data)
        except ConfigError as e:
            return jsonify({"error": str(e)}), _HTTP_BAD_REQUEST

        try:
            result = Simulation.from_config(config).run()
        except SimulationError as e:
            return jsonify({"error": str(e)}), _HTTP_UNPROCESSABLE

        return jsonify(
            {
                "strategy": result.strategy,
                "timeline": result.timeline,
                "finish_ticks": {str(pid): t for pid, t in result.finish_ticks.items()},
                "context_switches": result.context_switches,
                "log": [str(entry) for entry in result.log],
            },
        )

    return app


def main() -> None:
    """Run the web API development server.

    This is the ``py-sched-web`` console entry point.
    """
    app = create_app()
    app.run(debug=True, port=8080)
