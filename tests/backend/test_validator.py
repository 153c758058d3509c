from uuid import uuid4

import pytest

from src.vetcore.domain.models.observation_template import ObservationDataType, ObservationTemplate
from src.vetcore.errors import ConfigurationError, ValidationError
from src.vetcore.services.observations.validator import validate


def _template(data_type, **kwargs):
    return ObservationTemplate(
        id=uuid4(),
        tenant_id=uuid4(),
        monitoring_plan_id=uuid4(),
        name="Heart rate",
        data_type=data_type,
        **kwargs,
    )


NUMERIC = _template(ObservationDataType.NUMERIC, min_value=0, max_value=10)


@pytest.mark.parametrize("value", [5, 0, 10, 7.5])
def test_numeric_accepts_values_within_inclusive_bounds(value):
    validate(value, NUMERIC)


def test_numeric_bounds_have_distinct_reasons():
    with pytest.raises(ValidationError) as low:
        validate(-1, NUMERIC)
    with pytest.raises(ValidationError) as high:
        validate(11, NUMERIC)

    assert low.value.message == "Value must be at least 0"
    assert high.value.message == "Value must be at most 10"
    assert low.value.field == "value"


@pytest.mark.parametrize("value", ["5", None, True, [5], float("nan"), float("inf")])
def test_numeric_rejects_non_numbers(value):
    with pytest.raises(ValidationError):
        validate(value, NUMERIC)


def test_unbounded_numeric_accepts_anything_numeric():
    validate(-1e9, _template(ObservationDataType.NUMERIC))


def test_scale_uses_its_own_wording():
    scale = _template(ObservationDataType.SCALE, min_value=1, max_value=5)
    validate(3, scale)
    with pytest.raises(ValidationError) as exc_info:
        validate(6, scale)
    assert exc_info.value.message == "Scale value must be at most 5"


def test_boolean_requires_real_booleans():
    boolean = _template(ObservationDataType.BOOLEAN)
    validate(True, boolean)
    validate(False, boolean)
    for value in ("true", 1, 0, None):
        with pytest.raises(ValidationError):
            validate(value, boolean)


def test_enumeration_is_exact_and_case_sensitive():
    enum = _template(ObservationDataType.ENUMERATION, options=["MILD", "SEVERE"])
    validate("MILD", enum)

    for value in ("mild", "MODERATE", None, 1):
        with pytest.raises(ValidationError) as exc_info:
            validate(value, enum)
        assert exc_info.value.message == "Value must be one of [MILD, SEVERE]"


@pytest.mark.parametrize("options", [None, []])
def test_enumeration_without_options_is_a_configuration_defect(options):
    with pytest.raises(ConfigurationError):
        validate("MILD", _template(ObservationDataType.ENUMERATION, options=options))


def test_text_requires_a_string():
    text = _template(ObservationDataType.TEXT)
    validate("", text)
    validate("Ate normally", text)
    with pytest.raises(ValidationError):
        validate(42, text)


def test_image_requires_a_non_empty_reference():
    image = _template(ObservationDataType.IMAGE)
    validate("https://files.example.org/wound.jpg", image)
    for value in ("", None, 3):
        with pytest.raises(ValidationError):
            validate(value, image)


@pytest.mark.parametrize("value", [None, "", 5, {"anything": True}])
def test_note_accepts_any_payload(value):
    validate(value, _template(ObservationDataType.NOTE))


def test_unknown_data_type_is_a_configuration_defect():
    with pytest.raises(ConfigurationError):
        validate(5, _template("HOLOGRAM"))


def test_enum_data_type_is_stored_as_its_value():
    assert _template(ObservationDataType.NUMERIC).data_type == "NUMERIC"
