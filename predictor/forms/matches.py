from wtforms import Form, IntegerField, StringField
from wtforms.validators import DataRequired, Length, NumberRange, Optional, ValidationError

from predictor.models import MatchStatus
from predictor.utils.timezone_utils import parse_iso_datetime

STATUS_VALUES = [status.value for status in MatchStatus]


def validate_kickoff(form, field):
    if not field.data:
        return
    try:
        parse_iso_datetime(field.data)
    except ValueError:
        raise ValidationError("Kickoff time must be an ISO-8601 date and time")


def validate_status(form, field):
    if field.data and field.data.strip().upper() not in STATUS_VALUES:
        raise ValidationError(f"Status must be one of: {', '.join(STATUS_VALUES)}")


class MatchForm(Form):
    home_team = StringField("Home Team", validators=[DataRequired(), Length(max=100)])
    away_team = StringField("Away Team", validators=[DataRequired(), Length(max=100)])
    kickoff_time = StringField(
        "Kickoff Time", validators=[DataRequired(), validate_kickoff]
    )
    round = StringField("Round", validators=[Optional(), Length(max=50)])
    venue = StringField("Venue", validators=[Optional(), Length(max=100)])

    def validate_away_team(self, field):
        if self.home_team.data and field.data.strip() == self.home_team.data.strip():
            raise ValidationError("A team cannot play itself")


class MatchUpdateForm(Form):
    home_team = StringField("Home Team", validators=[Optional(), Length(max=100)])
    away_team = StringField("Away Team", validators=[Optional(), Length(max=100)])
    kickoff_time = StringField("Kickoff Time", validators=[Optional(), validate_kickoff])
    round = StringField("Round", validators=[Optional(), Length(max=50)])
    venue = StringField("Venue", validators=[Optional(), Length(max=100)])
    status = StringField("Status", validators=[Optional(), validate_status])
    home_score = IntegerField("Home Score", validators=[Optional(), NumberRange(min=0)])
    away_score = IntegerField("Away Score", validators=[Optional(), NumberRange(min=0)])


class MatchStatusForm(Form):
    status = StringField("Status", validators=[DataRequired(), validate_status])
