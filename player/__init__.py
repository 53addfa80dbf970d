"""Learner-side player for interactive explorations.

The session core (parameters, stopwatch, transition evaluation and the
PlayerSession state machine) is kept free of FastAPI concerns so it can be
driven by the HTTP routes, scripts and tests alike.
"""
