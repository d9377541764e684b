"""
JackTrack demo runner configuration.

The core package takes dataclass configs; these dictionaries feed them when
running main.py.
"""

# Device registry configuration
REGISTRY_CONFIG = {
    "connect_timeout_s": 10.0,            # BLE link gives up after this long
    "mark_lost_on_scan_stop": True,       # Never-connected balls become LOST on scan stop
    "await_disconnect_confirmation": True,
}

# Settings screen toggles
TRACKING_CONFIG = {
    "location_tracking": True,            # GPS tracking for distance measurements
    "ble_always_on": True,                # Keep scanning after balls are connected
}

# Scorecard configuration
SCORECARD_CONFIG = {
    "max_strokes": 15,
    "default_player_name": "Player 1",
}

# Logging configuration
LOGGING_CONFIG = {
    "level": "INFO",
    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}

# Simulation data (demo only; the core gets courses from a CourseProvider)
SIMULATION_CONFIG = {
    "courses": [
        {
            "course_id": "pebble-beach",
            "name": "Pebble Beach Golf Links",
            "holes": [
                {"number": 1, "par": 4, "yardage": 380},
                {"number": 2, "par": 5, "yardage": 511},
                {"number": 3, "par": 4, "yardage": 404},
                {"number": 4, "par": 4, "yardage": 333},
                {"number": 5, "par": 3, "yardage": 195},
                {"number": 6, "par": 5, "yardage": 523},
                {
                    "number": 7, "par": 4, "yardage": 392,
                    "pin": {"latitude": 36.5674, "longitude": -121.9500},
                    "tee": {"latitude": 36.5650, "longitude": -121.9480},
                },
                {"number": 8, "par": 4, "yardage": 428},
                {"number": 9, "par": 4, "yardage": 505},
            ],
        },
    ],
    "course_id": "pebble-beach",
    "hole": 7,
    "balls": {
        "ball-1": {"name": "Ball 1", "latitude": 36.5662, "longitude": -121.9489, "battery": 85, "signal": -58},
        "ball-2": {"name": "Ball 2", "latitude": 36.5668, "longitude": -121.9495, "battery": 62, "signal": -71},
        "ball-3": {"name": "Ball 3", "latitude": 36.5659, "longitude": -121.9502, "battery": 18, "signal": -84},
    },
    "walk_steps": 12,                      # Location fixes from tee toward the target ball
    "scores": {1: 4, 2: 6, 3: 4, 4: 5, 5: 3, 6: 5, 7: 4},
}
