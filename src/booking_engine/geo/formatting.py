"""Display formatting for route distance and duration."""


def format_distance(distance_meters: int) -> str:
    if distance_meters >= 1000:
        return f"{distance_meters / 1000:.1f} km"
    return f"{distance_meters}m"


def format_duration(duration_seconds: int) -> str:
    hours = duration_seconds // 3600
    minutes = (duration_seconds % 3600) // 60
    if hours > 0:
        return f"{hours} hours {minutes} mins"
    return f"{minutes} mins"


def format_travel_info(distance_meters: int, duration_seconds: int) -> str:
    return f"{format_duration(duration_seconds)} / {format_distance(distance_meters)}"
