import logging
import unittest
from unittest.mock import MagicMock

from gemdesk.entities.message import TTSVoice
from gemdesk.repositories.preferences_repository.preferences_repository_interface import (
    PreferencesRepositoryInterface,
)
from gemdesk.services.SettingsService.settings_service import (
    DEFAULT_TTS_SPEED,
    DEFAULT_VOICE,
    InvalidSettingError,
    SettingsService,
    validate_tts_speed,
    validate_voice,
)


class TestValidateTtsSpeed(unittest.TestCase):
    def test_bounds_are_accepted(self):
        self.assertEqual(validate_tts_speed(0.5), 0.5)
        self.assertEqual(validate_tts_speed(2.0), 2.0)

    def test_grid_values_are_accepted(self):
        self.assertEqual(validate_tts_speed(1.3), 1.3)
        self.assertEqual(validate_tts_speed(0.7000000000000001), 0.7)

    def test_out_of_range_is_rejected(self):
        for value in (0.3, 2.5, 0.4, 2.1, -1.0):
            with self.assertRaises(InvalidSettingError):
                validate_tts_speed(value)

    def test_off_grid_is_rejected(self):
        with self.assertRaises(InvalidSettingError):
            validate_tts_speed(1.25)

    def test_non_numeric_is_rejected(self):
        with self.assertRaises(InvalidSettingError):
            validate_tts_speed("fast")

    def test_non_finite_is_rejected(self):
        for value in (float("inf"), float("-inf"), float("nan"), "inf", "nan", "1e400"):
            with self.assertRaises(InvalidSettingError):
                validate_tts_speed(value)


class TestValidateVoice(unittest.TestCase):
    def test_matches_case_insensitively(self):
        self.assertIs(validate_voice("puck"), TTSVoice.PUCK)
        self.assertIs(validate_voice(" Zephyr "), TTSVoice.ZEPHYR)

    def test_passes_enum_through(self):
        self.assertIs(validate_voice(TTSVoice.FENRIR), TTSVoice.FENRIR)

    def test_unknown_voice(self):
        with self.assertRaises(InvalidSettingError):
            validate_voice("Robot")


class TestSettingsService(unittest.TestCase):
    def setUp(self):
        self.mock_repo = MagicMock(spec=PreferencesRepositoryInterface)
        self.logger = MagicMock(spec=logging.Logger)
        self.service = SettingsService(self.mock_repo, self.logger)

    def test_get_tts_speed_default(self):
        self.mock_repo.get_value.return_value = None
        self.assertEqual(self.service.get_tts_speed(), DEFAULT_TTS_SPEED)

    def test_get_tts_speed_stored(self):
        self.mock_repo.get_value.return_value = "1.7"
        self.assertEqual(self.service.get_tts_speed(), 1.7)

    def test_get_tts_speed_invalid_stored_value_falls_back(self):
        self.mock_repo.get_value.return_value = "9.0"
        self.assertEqual(self.service.get_tts_speed(), DEFAULT_TTS_SPEED)
        self.logger.warning.assert_called_once()

    def test_get_tts_speed_garbage_falls_back(self):
        self.mock_repo.get_value.return_value = "quick"
        self.assertEqual(self.service.get_tts_speed(), DEFAULT_TTS_SPEED)

    def test_get_tts_speed_non_finite_stored_value_falls_back(self):
        self.mock_repo.get_value.return_value = "inf"
        self.assertEqual(self.service.get_tts_speed(), DEFAULT_TTS_SPEED)

    def test_set_tts_speed_rejects_non_finite(self):
        with self.assertRaises(InvalidSettingError):
            self.service.set_tts_speed(float("nan"))
        self.mock_repo.set_value.assert_not_called()

    def test_set_tts_speed(self):
        self.assertEqual(self.service.set_tts_speed(1.5), 1.5)
        self.mock_repo.set_value.assert_called_once_with("tts_speed", "1.5")

    def test_set_tts_speed_rejects_out_of_range(self):
        with self.assertRaises(InvalidSettingError):
            self.service.set_tts_speed(2.5)
        self.mock_repo.set_value.assert_not_called()

    def test_get_voice_default(self):
        self.mock_repo.get_value.return_value = None
        self.assertIs(self.service.get_voice(), DEFAULT_VOICE)

    def test_get_voice_invalid_stored_value_falls_back(self):
        self.mock_repo.get_value.return_value = "Nobody"
        self.assertIs(self.service.get_voice(), DEFAULT_VOICE)

    def test_set_voice(self):
        self.assertIs(self.service.set_voice("charon"), TTSVoice.CHARON)
        self.mock_repo.set_value.assert_called_once_with("tts_voice", "Charon")

    def test_auto_speak(self):
        self.mock_repo.get_value.return_value = "1"
        self.assertTrue(self.service.is_auto_speak())
        self.mock_repo.get_value.return_value = None
        self.assertFalse(self.service.is_auto_speak())

    def test_set_auto_speak(self):
        self.service.set_auto_speak(False)
        self.mock_repo.set_value.assert_called_once_with("auto_speak", "0")


if __name__ == "__main__":
    unittest.main()
