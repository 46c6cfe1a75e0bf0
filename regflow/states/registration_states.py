from aiogram.fsm.state import State, StatesGroup


class RegistrationSteps(StatesGroup):
    """Wizard for Phase-2 profile completion."""
    basic_info      = State()   # Names, birthday, location, hobby
    id_verification = State()   # Photo of a government ID
    photo_upload    = State()   # Profile + additional photos
    about_you       = State()   # Bio, interests, looking for → final submit
    submitted       = State()   # Terminal: profile marked complete
