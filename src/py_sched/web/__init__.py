"""JSON web API for py-sched.

This package provides a Flask application for running simulations over
HTTP.  It is an **optional** extra; install with::

    pip install py-sched[web]

The ``create_app`` factory in ``app.py`` serves two endpoints:

- ``GET /api/strategies``: the selectable strategies.
- ``POST /api/simulate``: run a configuration document, return the result.
"""
