from functools import wraps
from flask_jwt_extended import get_jwt_identity
from models import db, User
from utils.errors import APIError, ForbiddenError, NotFoundError


def current_user_or_404():
    # Identity is the user id as a string
    user_id = get_jwt_identity()
    if not user_id:
        raise APIError("Unauthorized", status_code=401)
    user = db.session.get(User, int(user_id))
    if not user:
        raise NotFoundError("User not found")
    return user


def role_required(*roles):
    """Allow the wrapped view only for users whose role is in ``roles``."""
    def wrapper(fn):
        @wraps(fn)
        def decorator(*args, **kwargs):
            user = current_user_or_404()
            if user.role.value not in roles:
                raise ForbiddenError("Forbidden")
            return fn(*args, **kwargs)
        return decorator
    return wrapper
