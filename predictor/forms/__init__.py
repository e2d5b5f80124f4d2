import html

from werkzeug.datastructures import MultiDict

from predictor.errors import InvalidRequestError


def sanitize_input(text):
    """Sanitize user input to prevent XSS"""
    if not text:
        return text
    return html.escape(text.strip())


def load_json_form(form_class, data, error_class=InvalidRequestError):
    """
    Validate a JSON body with a WTForms form.

    Values are passed as strings, the way a browser would post them, so
    fractional numbers and booleans fail integer fields. Missing and null
    values are left out.

    Raises:
        error_class with the per-field errors when validation fails
    """
    if not isinstance(data, dict):
        raise error_class("Request body must be a JSON object")

    formdata = MultiDict(
        {key: str(value) for key, value in data.items() if value is not None}
    )
    form = form_class(formdata)
    if not form.validate():
        raise error_class(
            details={name: errors[0] for name, errors in form.errors.items()}
        )
    return form
