"""
EV Charging Reservation API

Books time-bounded charging sessions at stations, assigns a qualified station
operator to each booking and gates check-in with a scannable token.
"""

__version__ = "1.0.0"
