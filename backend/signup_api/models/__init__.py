from signup_api.models.participant import Participant

__all__ = ["Participant"]
