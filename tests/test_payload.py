import pytest

from prompt_client.configuration import MockConfigProvider
from prompt_client.errors import InvalidArgumentError
from prompt_client.models import GenerationConfig, TemplateRequest
from prompt_client.payload import build_request, default_generation_options, reference_value, resolve_generation_config
from prompt_client.templates import get_template_specification
from tests.decorators import with_test_config

# pylint: disable=unused-argument


class TestBuildRequest:
    """Tests for build_request without configuration."""

    @pytest.mark.parametrize("num_generations", [1, 2, 5])
    def test_num_generations_is_kept(self, num_generations: int):
        request: TemplateRequest = build_request("Summary", {"Input:Case": "500A"}, {"num_generations": num_generations})
        assert request.num_generations == num_generations
        assert request.config.num_generations == num_generations

    def test_record_id_is_wrapped(self):
        request = build_request("Summary", {"Input:Case": "500A"})
        assert request.inputs == {"Input:Case": {"id": "500A"}}

    def test_inline_object_is_passed_through(self):
        request = build_request("Summary", {"Input:Account": {"id": "001A", "Name": "Acme"}})
        assert request.inputs == {"Input:Account": {"id": "001A", "Name": "Acme"}}

    def test_template_id_is_stripped(self):
        assert build_request("  Summary ", {"Input:Case": "500A"}).template_id == "Summary"

    @pytest.mark.parametrize("template_id", ["", "   ", None])
    def test_empty_template_id_fails(self, template_id):
        with pytest.raises(InvalidArgumentError):
            build_request(template_id, {"Input:Case": "500A"})

    @pytest.mark.parametrize("temperature", [-0.01, 1.01, 2, -5])
    def test_temperature_outside_range_fails(self, temperature: float):
        with pytest.raises(InvalidArgumentError, match="temperature"):
            build_request("Summary", {"Input:Case": "500A"}, {"temperature": temperature})

    @pytest.mark.parametrize("temperature", [0, 0.5, 1])
    def test_temperature_bounds_are_inclusive(self, temperature: float):
        assert build_request("Summary", {"Input:Case": "500A"}, {"temperature": temperature}).config.temperature == temperature

    @pytest.mark.parametrize("num_generations", [0, -1])
    def test_num_generations_below_one_fails(self, num_generations: int):
        with pytest.raises(InvalidArgumentError, match="[Gg]enerations"):
            build_request("Summary", {"Input:Case": "500A"}, {"num_generations": num_generations})

    @pytest.mark.parametrize("num_generations", [True, False])
    def test_boolean_num_generations_fails(self, num_generations: bool):
        with pytest.raises(InvalidArgumentError, match="num_generations"):
            build_request("Summary", {"Input:Case": "500A"}, {"num_generations": num_generations})

    def test_numeric_string_num_generations_is_accepted(self):
        assert build_request("Summary", {"Input:Case": "500A"}, {"num_generations": "2"}).num_generations == 2

    def test_camel_case_config_is_accepted(self):
        request = build_request("Summary", {"Input:Case": "500A"}, {"numGenerations": 3, "temperature": 0.2})
        assert request.num_generations == 3

    def test_empty_inputs_with_required_inputs_fails(self):
        with pytest.raises(InvalidArgumentError, match="requires inputs"):
            build_request("Summary", {}, required_inputs=["Input:Case"])

    def test_missing_required_input_fails(self):
        with pytest.raises(InvalidArgumentError, match="Input:Case"):
            build_request("Summary", {"Input:Account": "001A"}, required_inputs=["Input:Case"])

    def test_empty_inputs_without_requirement_is_allowed(self):
        request = build_request("Summary", None)
        assert request.inputs == {}

    def test_inputs_must_be_a_mapping(self):
        with pytest.raises(InvalidArgumentError, match="found list"):
            build_request("Summary", [("Input:Case", "500A")])  # type: ignore

    @pytest.mark.parametrize("value", [42, ["500A"], None])
    def test_unsupported_input_value_fails(self, value):
        with pytest.raises(InvalidArgumentError):
            build_request("Summary", {"Input:Case": value})

    def test_blank_record_id_fails(self):
        with pytest.raises(InvalidArgumentError, match="empty record id"):
            reference_value("Input:Case", "  ")

    def test_inputs_are_not_mutated(self):
        inputs = {"Input:Case": "500A"}
        build_request("Summary", inputs)
        assert inputs == {"Input:Case": "500A"}

    def test_invalid_argument_is_a_value_error(self):
        with pytest.raises(ValueError):
            build_request("", {"Input:Case": "500A"})


class TestPayload:
    """Tests for the wire format of TemplateRequest."""

    def test_payload_shape(self):
        request = build_request(
            "Case_Summary",
            {"Input:Case": "500A"},
            {"num_generations": 2, "temperature": 0.3, "frequency_penalty": 0.1, "application_name": "MyApp"},
            preview=True,
        )
        assert request.to_payload() == {
            "isPreview": True,
            "inputParams": {"valueMap": {"Input:Case": {"value": {"id": "500A"}}}},
            "additionalConfig": {"numGenerations": 2, "temperature": 0.3, "frequencyPenalty": 0.1, "applicationName": "MyApp"},
        }

    def test_unset_penalties_are_omitted(self):
        config: dict = build_request("Summary", {"Input:Case": "500A"}).to_payload()["additionalConfig"]
        assert "frequencyPenalty" not in config
        assert "presencePenalty" not in config
        assert config["applicationName"] == "PromptBuilderPreview"

    def test_generation_config_instance_is_used_as_is(self):
        config = GenerationConfig(num_generations=4, temperature=0.9)
        assert resolve_generation_config(config) is config


class TestBuildRequestWithConfiguration:
    """Tests for build_request using configured template specifications."""

    @with_test_config
    def test_known_template_requires_inputs(self, test_provider: MockConfigProvider):
        with pytest.raises(InvalidArgumentError, match="requires inputs"):
            build_request("Case_Classification", {})

    @with_test_config
    def test_known_template_without_inputs(self, test_provider: MockConfigProvider):
        request = build_request("Free_Text", {})
        assert request.template_id == "Free_Text"

    @with_test_config
    def test_explicit_required_inputs_override_configuration(self, test_provider: MockConfigProvider):
        request = build_request("Case_Classification", {"Input:Other": "1"}, required_inputs=[])
        assert request.inputs == {"Input:Other": {"id": "1"}}

    @with_test_config
    def test_generation_defaults_from_configuration(self, test_provider: MockConfigProvider):
        test_provider.get_config().update({"generation.temperature": 0.4, "generation.application_name": "Configured"})
        request = build_request("Case_Classification", {"Input:Case": "500A"})
        assert request.config.temperature == 0.4
        assert request.config.application_name == "Configured"

    @with_test_config
    def test_template_generation_defaults_override_section(self, test_provider: MockConfigProvider):
        request = build_request("Case_Summary", {"Input:Case": "500A"})
        assert request.config.temperature == 0.7

    @with_test_config
    def test_call_config_overrides_defaults(self, test_provider: MockConfigProvider):
        request = build_request("Case_Summary", {"Input:Case": "500A"}, {"temperature": 0.1})
        assert request.config.temperature == 0.1

    @with_test_config
    def test_configured_invalid_default_fails(self, test_provider: MockConfigProvider):
        test_provider.get_config().update({"generation.num_generations": 0})
        with pytest.raises(InvalidArgumentError):
            build_request("Free_Text", {})

    @with_test_config
    def test_template_defaults_leave_configuration_untouched(self, test_provider: MockConfigProvider):
        options = default_generation_options(get_template_specification("Case_Summary"))

        assert options == {"num_generations": 1, "temperature": 0.7, "application_name": "PromptBuilderPreview"}
        assert test_provider.get_config().get("generation.temperature") == 0.0
