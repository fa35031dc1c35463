"""
Test cases for the host-facing characteristic model.
"""

import logging
from unittest.mock import Mock, call

import pytest

from mqttlightbulb.accessory import Characteristic, LightbulbService
from mqttlightbulb.state import Origin


class TestCharacteristic:
    def test_get_value_uses_handler(self):
        char = Characteristic("On", bool).on_get(lambda: True)
        assert char.get_value() is True

    def test_set_value_passes_origin(self):
        setter = Mock()
        char = Characteristic("Hue", float, 0, 360).on_get(lambda: 0).on_set(setter)

        char.set_value(120, Origin.DEVICE)

        setter.assert_called_once_with(120, Origin.DEVICE)

    def test_missing_handlers(self):
        char = Characteristic("On", bool)
        with pytest.raises(RuntimeError, match="No get handler"):
            char.get_value()
        with pytest.raises(RuntimeError, match="No set handler"):
            char.set_value(True, Origin.HOST)

    def test_observers_notified_with_current_value(self):
        values = {"Brightness": 0}
        char = (
            Characteristic("Brightness", int, 0, 100)
            .on_get(lambda: values["Brightness"])
            .on_set(lambda v, origin: values.update(Brightness=v))
        )
        observer = Mock()
        char.subscribe(observer)

        char.set_value(42, Origin.HOST)

        observer.assert_called_once_with("Brightness", 42, Origin.HOST)

    def test_subscribe_once(self):
        char = Characteristic("On", bool).on_get(lambda: True).on_set(Mock())
        observer = Mock()
        char.subscribe(observer)
        char.subscribe(observer)

        char.set_value(True, Origin.DEVICE)

        assert observer.call_count == 1

    def test_unsubscribe(self):
        char = Characteristic("On", bool).on_get(lambda: True).on_set(Mock())
        observer = Mock()
        char.subscribe(observer)
        char.unsubscribe(observer)

        char.set_value(True, Origin.DEVICE)

        observer.assert_not_called()

    def test_observer_error_is_logged(self, caplog):
        char = Characteristic("On", bool).on_get(lambda: True).on_set(Mock())
        char.subscribe(Mock(side_effect=RuntimeError("boom")))
        after = Mock()
        char.subscribe(after)

        with caplog.at_level(logging.ERROR):
            char.set_value(True, Origin.DEVICE)

        assert "boom" in caplog.text
        after.assert_called_once()


class TestLightbulbService:
    def test_characteristics(self):
        service = LightbulbService("Desk Lamp")

        names = [c.name for c in service.get_characteristics()]
        assert names == ["On", "Hue", "Saturation", "Brightness"]

    def test_values_clamped_to_range(self):
        service = LightbulbService("Desk Lamp")
        setter = Mock()
        hue = service.get_characteristic("Hue").on_get(lambda: 0).on_set(setter)

        hue.set_value(400, Origin.HOST)
        hue.set_value(-5, Origin.HOST)
        hue.set_value(12.5, Origin.HOST)

        assert setter.call_args_list == [
            call(360, Origin.HOST),
            call(0, Origin.HOST),
            call(12.5, Origin.HOST),
        ]

    def test_brightness_integral_float(self):
        service = LightbulbService("Desk Lamp")
        setter = Mock()
        brightness = service.get_characteristic("Brightness")
        brightness.on_get(lambda: 0).on_set(setter)

        brightness.set_value(75.0, Origin.HOST)
        brightness.set_value(150, Origin.HOST)

        assert setter.call_args_list == [call(75, Origin.HOST), call(100, Origin.HOST)]
        assert isinstance(setter.call_args_list[0].args[0], int)

    def test_on_coerced_to_bool(self):
        service = LightbulbService("Desk Lamp")
        setter = Mock()
        service.get_characteristic("On").on_get(lambda: True).on_set(setter)

        service.get_characteristic("On").set_value(1, Origin.HOST)

        setter.assert_called_once_with(True, Origin.HOST)
        assert setter.call_args.args[0] is True

    def test_unknown_characteristic(self):
        with pytest.raises(KeyError):
            LightbulbService("Desk Lamp").get_characteristic("ColorTemperature")

    def test_service_subscription(self):
        service = LightbulbService("Desk Lamp")
        for char in service.get_characteristics():
            char.on_get(lambda: 1).on_set(Mock())
        observer = Mock()
        service.subscribe(observer)

        service.get_characteristic("Saturation").set_value(1, Origin.DEVICE)
        service.unsubscribe(observer)
        service.get_characteristic("Hue").set_value(1, Origin.DEVICE)

        observer.assert_called_once_with("Saturation", 1, Origin.DEVICE)
