"""Forms for the room blueprint."""

from flask_wtf import FlaskForm
from wtforms import StringField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional

from .models import MAX_DESCRIPTION_LENGTH, MAX_ROOM_NAME_LENGTH


class RoomForm(FlaskForm):
    """Form for creating a new room."""

    name = StringField(
        "Room Name", validators=[DataRequired(), Length(max=MAX_ROOM_NAME_LENGTH)]
    )
    emoji = StringField("Emoji", validators=[DataRequired(), Length(max=16)])
    description = TextAreaField(
        "Description", validators=[Optional(), Length(max=MAX_DESCRIPTION_LENGTH)]
    )
