"""
UI Tests
========
Screens are rendered off-screen; the app's keyboard handling is driven
without opening a window.
"""

import unittest

import numpy as np

from fakes import FakeCamera, StubComposer, StubRecognizer, png_bytes

from hand_to_heart.composition import CompositionResult
from hand_to_heart.config import AppConfig
from hand_to_heart.image_generator import encode_data_uri
from hand_to_heart.recognition import RecognitionOutcome
from hand_to_heart.scheduler import ImmediateRunner
from hand_to_heart.session import (
    CompositionView, IntroView, Phase, PracticeView, ResultView, SelectionView
)
from hand_to_heart.signs import CSL_SIGNS, get_sign
from hand_to_heart.ui import HandToHeartApp, RenderContext, ScreenRenderer, parse_args, wrap_text

SHAPE = (ScreenRenderer.HEIGHT, ScreenRenderer.WIDTH, 3)


class TestWrapText(unittest.TestCase):

    def test_wraps_on_words(self):
        self.assertEqual(wrap_text("one two three four", 9), ["one two", "three", "four"])

    def test_keeps_blank_lines(self):
        self.assertEqual(wrap_text("a\n\nb", 10), ["a", "", "b"])
        self.assertEqual(wrap_text("", 10), [""])


class TestScreenRenderer(unittest.TestCase):

    def setUp(self):
        self.renderer = ScreenRenderer()

    def assertScreen(self, image):
        self.assertEqual(image.shape, SHAPE)
        self.assertEqual(image.dtype, np.uint8)

    def test_intro(self):
        self.assertScreen(self.renderer.render(IntroView()))

    def test_selection(self):
        view = SelectionView(signs=CSL_SIGNS, collected_ids=('hello',), status="You have already collected this sign.", can_finish=True)
        self.assertScreen(self.renderer.render(view, RenderContext(style='woodcut', notice="hi")))

    def test_practice_states(self):
        sign = get_sign('home')
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        contexts = [
            RenderContext(),
            RenderContext(camera_frame=frame),
            RenderContext(camera_error="Camera access denied or unavailable."),
        ]
        for context in contexts:
            for busy in (False, True):
                with self.subTest(busy=busy, error=context.camera_error):
                    view = PracticeView(sign=sign, status="Success! Nice.", busy=busy, celebrating=False)
                    self.assertScreen(self.renderer.render(view, context))

    def test_composition(self):
        view = CompositionView(signs=(get_sign('love'), get_sign('dream')))
        self.assertScreen(self.renderer.render(view))

    def test_result_with_and_without_illustration(self):
        signs = (get_sign('flower'),)
        illustrated = CompositionResult("Petals of light.", encode_data_uri(png_bytes(64, 48)))
        plain = CompositionResult("Petals of light.", None)
        broken = CompositionResult("Petals of light.", "data:image/png;base64,AAAA")

        for result in (illustrated, plain, broken):
            with self.subTest(illustration=bool(result.illustration)):
                self.assertScreen(self.renderer.render(ResultView(result=result, signs=signs)))


class TestApp(unittest.TestCase):

    def setUp(self):
        self.camera = FakeCamera()
        self.recognizer = StubRecognizer(RecognitionOutcome(True, "Lovely."))
        self.composer = StubComposer(CompositionResult("A small poem.", None))
        self.app = self.make_app(self.camera)

    def make_app(self, camera):
        config = AppConfig(use_mock=True, hand_guide=False, success_delay=0.0)
        app = HandToHeartApp(config, recognizer=self.recognizer, composer=self.composer, camera=camera)
        app.controller.runner = ImmediateRunner()
        return app

    def press(self, *keys):
        for key in keys:
            if isinstance(key, str):
                key = ord(key)
            self.assertTrue(self.app._handle_keyboard(key))
            self.app.scheduler.run_pending()
            self.app._sync_camera()

    def test_full_journey(self):
        self.press(13)
        self.assertEqual(self.app.controller.phase, Phase.SELECTION)

        self.press('1')
        self.assertEqual(self.app.controller.phase, Phase.PRACTICE)
        self.assertEqual(self.camera.started, 1)
        self.assertEqual(self.app.render().shape, SHAPE)

        self.press(32)
        self.assertEqual(self.recognizer.calls[0][1], get_sign('hello'))
        self.press(-1)
        self.assertEqual(self.app.controller.phase, Phase.SELECTION)
        self.assertEqual(self.camera.stopped, 1)

        self.press('f')
        self.assertEqual(self.app.controller.phase, Phase.RESULT)
        self.assertEqual(self.composer.calls, [(get_sign('hello'),)])
        self.assertEqual(self.app.render().shape, SHAPE)

        self.press('r')
        self.assertEqual(self.app.controller.phase, Phase.INTRO)

    def test_zero_selects_tenth_sign(self):
        self.press(13, '0')
        self.assertEqual(self.app.controller.session.active_sign, get_sign('peace'))

    def test_back_releases_camera(self):
        self.press(13, '3', 'b')
        self.assertEqual(self.app.controller.phase, Phase.SELECTION)
        self.assertEqual(self.camera.started, 1)
        self.assertEqual(self.camera.stopped, 1)

    def test_camera_error_blocks_verification(self):
        self.camera = FakeCamera(error="Camera access denied or unavailable.")
        self.app = self.make_app(self.camera)

        self.press(13, '1', 32)

        self.assertEqual(self.recognizer.calls, [])
        self.assertEqual(self.app.controller.phase, Phase.PRACTICE)
        self.assertEqual(self.app._notice, "Camera access denied or unavailable.")
        self.assertEqual(self.app.render().shape, SHAPE)

    def test_style_cycles(self):
        self.press(13, 's')
        self.assertEqual(self.composer.style, 'woodcut')
        self.press('s', 's')
        self.assertEqual(self.composer.style, 'gorogoa')

    def test_finish_needs_a_sign(self):
        self.press(13, 'f')
        self.assertEqual(self.app.controller.phase, Phase.SELECTION)
        self.assertEqual(self.composer.calls, [])

    def test_quit_keys(self):
        self.assertFalse(self.app._handle_keyboard(ord('q')))
        self.assertFalse(self.app._handle_keyboard(27))


class TestParseArgs(unittest.TestCase):

    def test_flags(self):
        args = parse_args(['--mock', '--camera', '1', '--style', 'watercolor', '--no-hand-guide'])
        self.assertTrue(args.mock)
        self.assertEqual(args.camera, 1)
        self.assertEqual(args.style, 'watercolor')
        self.assertTrue(args.no_hand_guide)

    def test_defaults(self):
        args = parse_args([])
        self.assertFalse(args.mock)
        self.assertIsNone(args.camera)
        self.assertIsNone(args.style)


if __name__ == "__main__":
    unittest.main()
