from regflow.states.registration_states import RegistrationSteps

__all__ = ["RegistrationSteps"]
