"""Forms for the social blueprint."""

from flask_wtf import FlaskForm
from wtforms import StringField
from wtforms.validators import DataRequired, Length

from tidyly.core.constants import FRIEND_CODE_LENGTH, INVITE_CODE_LENGTH


class FriendCodeForm(FlaskForm):
    """Form for sending a friend request by friend code."""

    code = StringField(
        "Friend Code",
        validators=[
            DataRequired(),
            Length(
                min=FRIEND_CODE_LENGTH,
                max=FRIEND_CODE_LENGTH,
                message=f"Friend codes are {FRIEND_CODE_LENGTH} characters long.",
            ),
        ],
    )


class InviteCodeForm(FlaskForm):
    """Form for asking to join a room by invite code."""

    code = StringField(
        "Invite Code",
        validators=[
            DataRequired(),
            Length(
                min=INVITE_CODE_LENGTH,
                max=INVITE_CODE_LENGTH,
                message=f"Invite codes are {INVITE_CODE_LENGTH} characters long.",
            ),
        ],
    )
