from membership_engine.routers import cascades, centers, classes, members

__all__ = [
    'cascades',
    'centers',
    'classes',
    'members',
]
