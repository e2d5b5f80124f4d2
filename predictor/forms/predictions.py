from wtforms import Form, IntegerField
from wtforms.validators import InputRequired


class PredictionUpdateForm(Form):
    home_goals = IntegerField("Home Goals", validators=[InputRequired()])
    away_goals = IntegerField("Away Goals", validators=[InputRequired()])


class PredictionForm(PredictionUpdateForm):
    match_id = IntegerField("Match", validators=[InputRequired()])
