"""TrackPro — live event tracking dashboard backend.

Participants carry GPS devices during sports and adventure events. This
service stores events, routes, participants and tracking points, and pushes
live positions and emergency alerts to every connected viewer.
"""

__version__ = "0.1.0"
