"""Exceptions raised by the face affect package."""


class FaceAffectError(Exception):
    """Base class for all face_affect errors."""


class TuningError(FaceAffectError, ValueError):
    """Tuning values are out of range or come from an unsupported version."""


class SessionNotActiveError(FaceAffectError, RuntimeError):
    """A smoothing update was attempted outside begin_session()/end_session()."""
