import logging

from flask import jsonify
from flask_login import current_user, login_required, login_user, logout_user

from prode import db, limiter, login_manager
from prode.errors import InvalidInput, Unauthenticated
from prode.forms.auth import LoginForm, RegistrationForm, sanitize_input
from prode.models import User
from prode.routes.auth import bp

logger = logging.getLogger(__name__)


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify(Unauthenticated().to_dict()), 401


def _form_error(form):
    """First validation message of a form as an InvalidInput"""
    for field_name, errors in form.errors.items():
        if errors:
            return InvalidInput(f"{field_name}: {errors[0]}")
    return InvalidInput("Invalid or missing data")


@bp.route("/register", methods=["POST"])
@limiter.limit("5 per hour")
def register():
    form = RegistrationForm()
    if not form.validate_on_submit():
        raise _form_error(form)

    user = User(
        username=form.username.data,
        email=form.email.data.lower(),
        first_name=sanitize_input(form.first_name.data) or None,
        last_name=sanitize_input(form.last_name.data) or None,
    )
    user.set_password(form.password.data)
    db.session.add(user)
    db.session.commit()

    login_user(user)
    logger.info(f"New user registered: {user.username}")
    return jsonify({"message": "Registration successful", "data": user.to_dict()}), 201


@bp.route("/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    form = LoginForm()
    if not form.validate_on_submit():
        raise _form_error(form)

    user = User.query.filter_by(username=form.username.data).first()
    if user is None or not user.check_password(form.password.data):
        logger.warning(f"Failed login attempt for username {form.username.data!r}")
        raise Unauthenticated("Invalid username or password")

    if not user.is_active:
        raise Unauthenticated("Your account has been deactivated")

    login_user(user, remember=form.remember_me.data)
    user.update_last_login()
    return jsonify({"message": f"Welcome back, {user.full_name}!", "data": user.to_dict()})


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logger.info(f"User {current_user.username} logged out")
    logout_user()
    return jsonify({"message": "You have been logged out"})


@bp.route("/me")
@login_required
def me():
    return jsonify({"data": current_user.to_dict()})
