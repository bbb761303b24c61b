"""
UI Module - Main Application Interface
======================================
OpenCV window that walks the user through the journey: learn signs in front
of the webcam, have each one verified, then read the poem and see the
illustration woven from them.

Screens are drawn with Pillow (so Chinese sign names render) and shown with
cv2.imshow. The renderer dispatches on the session's per-phase view.
"""

import argparse
import math
import os
import textwrap
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import cv2
import numpy as np
from dotenv import load_dotenv
from PIL import Image, ImageDraw, ImageFont

from .camera import Camera, CameraUnavailableError
from .composition import CompositionClient, MockCompositionClient
from .config import AppConfig, create_genai_client
from .hand_tracking import HandGuide, create_hand_guide, draw_hand_outlines
from .image_generator import StylePresets, decode_data_uri
from .recognition import MockRecognitionClient, RecognitionClient
from .scheduler import Scheduler, ThreadRunner
from .session import (
    CompositionView, IntroView, Phase, PracticeView, ResultView,
    SelectionView, SessionController, SessionView
)


class Palette:
    """Screen colors (RGB, drawn with Pillow)."""
    PAPER = (244, 241, 234)
    CARD = (255, 255, 255)
    INK = (44, 36, 27)
    FRAME = (92, 77, 60)
    ACCENT = (166, 94, 62)
    SUCCESS = (52, 120, 64)
    ERROR = (180, 40, 40)
    MUTED = (160, 150, 136)
    DIM = (226, 220, 210)


# Fonts with CJK glyphs, tried in order when no font is configured
CJK_FONT_CANDIDATES = (
    "/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/noto-cjk/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/truetype/wqy/wqy-microhei.ttc",
    "/System/Library/Fonts/PingFang.ttc",
    "/System/Library/Fonts/STHeiti Medium.ttc",
    "C:/Windows/Fonts/msyh.ttc",
    "C:/Windows/Fonts/simhei.ttf",
)


def load_font(size: int, font_path: Optional[str] = None) -> ImageFont.ImageFont:
    """Load a TrueType font at `size`, falling back to Pillow's default."""
    candidates = [font_path] if font_path else []
    candidates.extend(CJK_FONT_CANDIDATES)

    for path in candidates:
        if path and os.path.exists(path):
            try:
                return ImageFont.truetype(path, size)
            except OSError:
                continue
    return ImageFont.load_default(size=size)


def wrap_text(text: str, width: int) -> List[str]:
    """Wrap text to lines of at most `width` characters."""
    lines = []
    for paragraph in text.splitlines() or [""]:
        lines.extend(textwrap.wrap(paragraph, width) or [""])
    return lines


@dataclass
class RenderContext:
    """Non-session inputs to a screen."""
    camera_frame: Optional[np.ndarray] = None
    camera_error: Optional[str] = None
    notice: str = ""
    style: str = StylePresets.DEFAULT


class ScreenRenderer:
    """
    Draws one screen per session view.

    Screens are plain functions of (view, context); the renderer keeps only
    a font cache and the last decoded illustration.
    """

    WIDTH = 1100
    HEIGHT = 680

    def __init__(self, width: int = WIDTH, height: int = HEIGHT, font_path: Optional[str] = None):
        self.width = width
        self.height = height
        self.font_path = font_path
        self._fonts: Dict[int, ImageFont.ImageFont] = {}
        self._illustration: Tuple[Optional[str], Optional[np.ndarray]] = (None, None)

        self._screens: Dict[type, Callable] = {
            IntroView: self._render_intro,
            SelectionView: self._render_selection,
            PracticeView: self._render_practice,
            CompositionView: self._render_composition,
            ResultView: self._render_result,
        }

    def font(self, size: int) -> ImageFont.ImageFont:
        if size not in self._fonts:
            self._fonts[size] = load_font(size, self.font_path)
        return self._fonts[size]

    def render(self, view: SessionView, context: Optional[RenderContext] = None) -> np.ndarray:
        """
        Render a view.

        Returns:
            BGR image of size (HEIGHT, WIDTH, 3)
        """
        context = context or RenderContext()
        image = Image.new("RGB", (self.width, self.height), Palette.PAPER)
        draw = ImageDraw.Draw(image)

        self._screens[type(view)](image, draw, view, context)

        if context.notice:
            self._text(draw, (20, self.height - 34), context.notice, 16, Palette.MUTED)

        return cv2.cvtColor(np.array(image), cv2.COLOR_RGB2BGR)

    # ------------------------------------------------------------------
    # Drawing helpers

    def _text(self, draw, xy, text, size, fill):
        draw.text(xy, text, font=self.font(size), fill=fill)

    def _centered(self, draw, cx, y, text, size, fill):
        font = self.font(size)
        width = draw.textlength(text, font=font)
        draw.text((cx - width / 2, y), text, font=font, fill=fill)

    def _paragraph(self, draw, xy, text, size, fill, width_chars, line_gap=8) -> int:
        """Draw wrapped text; returns the y below the last line."""
        x, y = xy
        for line in wrap_text(text, width_chars):
            self._text(draw, (x, y), line, size, fill)
            y += size + line_gap
        return y

    def _paste_frame(self, image: Image.Image, frame: np.ndarray, box: Tuple[int, int, int, int]):
        """Fit a BGR frame inside box (x, y, w, h), centered, keeping aspect."""
        x, y, w, h = box
        fh, fw = frame.shape[:2]
        scale = min(w / fw, h / fh)
        new_w, new_h = max(1, int(fw * scale)), max(1, int(fh * scale))
        resized = cv2.resize(frame, (new_w, new_h))
        rgb = cv2.cvtColor(resized, cv2.COLOR_BGR2RGB)
        offset = (x + (w - new_w) // 2, y + (h - new_h) // 2)
        image.paste(Image.fromarray(rgb), offset)
        return offset + (new_w, new_h)

    # ------------------------------------------------------------------
    # Screens

    def _render_intro(self, image, draw, view: IntroView, context: RenderContext):
        cx = self.width // 2
        self._centered(draw, cx, 110, view.title, 64, Palette.INK)
        self._centered(draw, cx, 195, '"Echoes of Gorogoa"', 24, Palette.FRAME)

        box = (cx - 340, 260, cx + 340, 460)
        draw.rectangle(box, fill=Palette.CARD, outline=Palette.FRAME, width=4)
        draw.rectangle((box[0] + 8, box[1] + 8, box[2] - 8, box[3] - 8), outline=Palette.FRAME, width=1)
        lines = [
            "Welcome. This is an interactive experiment connecting",
            "Language, Gesture, and Emotion.",
            "",
            "You will learn simple Chinese Sign Language gestures.",
            "Your hands will tell a story, and AI will paint it.",
        ]
        y = box[1] + 36
        for line in lines:
            self._centered(draw, cx, y, line, 20, Palette.INK)
            y += 28

        draw.rectangle((cx - 150, 510, cx + 150, 560), fill=Palette.ACCENT)
        self._centered(draw, cx, 522, "[ENTER] Begin Journey", 22, Palette.CARD)

    def _render_selection(self, image, draw, view: SelectionView, context: RenderContext):
        cx = self.width // 2
        self._centered(draw, cx, 24, "Select a Sign to Learn", 34, Palette.INK)
        self._centered(
            draw, cx, 72,
            f"Collect at least one to weave a story ({len(view.collected_ids)} collected)",
            18, Palette.FRAME
        )

        columns, card_w, card_h, gap = 5, 180, 170, 20
        grid_w = columns * card_w + (columns - 1) * gap
        left, top = (self.width - grid_w) // 2, 115

        for idx, sign in enumerate(view.signs):
            row, col = divmod(idx, columns)
            x0 = left + col * (card_w + gap)
            y0 = top + row * (card_h + gap)
            box = (x0, y0, x0 + card_w, y0 + card_h)
            collected = sign.id in view.collected_ids
            key = str((idx + 1) % 10)

            draw.rectangle(
                box,
                fill=Palette.DIM if collected else Palette.CARD,
                outline=Palette.MUTED if collected else Palette.FRAME,
                width=2
            )
            ink = Palette.MUTED if collected else Palette.INK
            self._text(draw, (x0 + 10, y0 + 8), f"[{key}]", 16, Palette.MUTED)
            self._centered(draw, x0 + card_w // 2, y0 + 45, sign.chinese_name, 40, ink)
            self._centered(draw, x0 + card_w // 2, y0 + 115, sign.name.upper(), 16, Palette.FRAME)

            if collected:
                mx, my = x0 + card_w - 34, y0 + 14
                draw.line((mx, my + 10, mx + 8, my + 18, mx + 22, my), fill=Palette.SUCCESS, width=4)

        if view.status:
            self._centered(draw, cx, top + 2 * card_h + gap + 20, view.status, 20, Palette.ACCENT)

        if view.can_finish:
            draw.rectangle((cx - 230, 565, cx + 230, 615), fill=Palette.INK)
            self._centered(draw, cx, 578, "[F] Weave Story & Generate Art", 22, Palette.CARD)

        style_title = StylePresets.get_preset(context.style)['title']
        self._text(draw, (self.width - 260, self.height - 34), f"[S] Style: {style_title}  [Q] Quit", 16, Palette.MUTED)

    def _render_practice(self, image, draw, view: PracticeView, context: RenderContext):
        sign = view.sign
        left = 40

        self._text(draw, (left, 50), sign.chinese_name, 56, Palette.INK)
        self._text(draw, (left, 125), sign.name.upper(), 22, Palette.FRAME)
        draw.line((left, 160, left + 420, 160), fill=Palette.ACCENT, width=3)

        draw.rectangle((left, 185, left + 440, 385), fill=Palette.CARD, outline=Palette.DIM, width=2)
        self._text(draw, (left + 16, 198), "Instruction:", 20, Palette.INK)
        self._paragraph(draw, (left + 16, 232), sign.instruction, 19, Palette.INK, 40)

        self._text(draw, (left, 405), "Pose in front of the camera and press SPACE to verify.", 16, Palette.MUTED)
        self._text(draw, (left, 440), "[B] Back to Selection", 18, Palette.FRAME)

        # Camera panel
        panel = (530, 50, 530, 400)
        px, py, pw, ph = panel
        draw.rectangle((px - 4, py - 4, px + pw + 4, py + ph + 4), fill=(0, 0, 0), outline=Palette.FRAME, width=4)

        if context.camera_error:
            draw.rectangle((px + 20, py + ph // 2 - 40, px + pw - 20, py + ph // 2 + 40), fill=(253, 236, 236), outline=Palette.ERROR)
            self._centered(draw, px + pw // 2, py + ph // 2 - 12, context.camera_error, 18, Palette.ERROR)
        elif context.camera_frame is None:
            self._centered(draw, px + pw // 2, py + ph // 2 - 10, "Initializing Camera...", 20, Palette.CARD)
        else:
            fx, fy, fw, fh = self._paste_frame(image, context.camera_frame, panel)
            # Frame guide
            draw.rectangle((fx + 16, fy + 16, fx + fw - 16, fy + fh - 16), outline=(200, 200, 200), width=1)
            if view.busy:
                overlay = Image.new("RGBA", (fw, fh), (0, 0, 0, 110))
                image.paste(overlay, (fx, fy), overlay)
                self._centered(draw, fx + fw // 2, fy + fh // 2 - 12, "Observing...", 24, Palette.CARD)

        if view.status:
            color = Palette.SUCCESS if view.status.startswith("Success") else Palette.ACCENT
            y = py + ph + 20
            for line in wrap_text(view.status, 52)[:3]:
                self._centered(draw, px + pw // 2, y, line, 18, color)
                y += 24

        enabled = not (view.busy or view.celebrating or context.camera_error)
        label = "Observing..." if view.busy else "[SPACE] Verify Gesture"
        draw.rectangle(
            (px, py + ph + 100, px + pw, py + ph + 150),
            fill=Palette.ACCENT if enabled else Palette.MUTED
        )
        self._centered(draw, px + pw // 2, py + ph + 112, label, 22, Palette.CARD)

    def _render_composition(self, image, draw, view: CompositionView, context: RenderContext):
        draw.rectangle((0, 0, self.width, self.height), fill=Palette.INK)
        cx, cy = self.width // 2, self.height // 2 - 80

        # Spinner
        start = (time.time() * 360) % 360
        draw.arc((cx - 48, cy - 48, cx + 48, cy + 48), start, start + 270, fill=Palette.ACCENT, width=6)

        pulse = 0.6 + 0.4 * abs(math.sin(time.time() * 2))
        tone = tuple(int(c * pulse) for c in Palette.PAPER)
        self._centered(draw, cx, cy + 90, "Weaving Elements...", 34, tone)
        names = "   ".join(f"{sign.name}..." for sign in view.signs)
        self._centered(draw, cx, cy + 150, names, 20, Palette.DIM)

    def _render_result(self, image, draw, view: ResultView, context: RenderContext):
        margin = 30
        draw.rectangle((margin, margin, self.width - margin, self.height - margin), fill=Palette.CARD, outline=Palette.FRAME, width=8)

        # Illustration frame
        art = (margin + 24, margin + 24, 500, self.height - 2 * margin - 48)
        ax, ay, aw, ah = art
        draw.rectangle((ax, ay, ax + aw, ay + ah), fill=Palette.PAPER)

        illustration = self._decode_illustration(view.result.illustration)
        if illustration is not None:
            fx, fy, fw, fh = self._paste_frame(image, illustration, (ax + 10, ay + 10, aw - 20, ah - 20))
            corner = 28
            for (x, y, dx, dy) in ((fx, fy, 1, 1), (fx + fw, fy, -1, 1), (fx, fy + fh, 1, -1), (fx + fw, fy + fh, -1, -1)):
                draw.line((x, y, x + dx * corner, y), fill=Palette.INK, width=4)
                draw.line((x, y, x, y + dy * corner), fill=Palette.INK, width=4)
        else:
            self._centered(draw, ax + aw // 2, ay + ah // 2, "Image generation unavailable", 20, Palette.MUTED)

        # Text side
        tx = ax + aw + 40
        tw = self.width - margin - 24 - tx
        tcx = tx + tw // 2
        self._centered(draw, tcx, ay + 20, "THE ECHO", 26, Palette.ACCENT)

        y = ay + 90
        for line in wrap_text(f'"{view.result.story}"', 36)[:12]:
            self._centered(draw, tcx, y, line, 22, Palette.INK)
            y += 34

        tags = "  ".join(sign.name.upper() for sign in view.signs)
        y = ay + ah - 140
        for line in wrap_text(tags, 44)[:3]:
            self._centered(draw, tcx, y, line, 15, Palette.FRAME)
            y += 20

        draw.rectangle((tcx - 150, ay + ah - 70, tcx + 150, ay + ah - 25), outline=Palette.INK, width=2)
        self._centered(draw, tcx, ay + ah - 60, "[R] START NEW JOURNEY", 18, Palette.INK)

    def _decode_illustration(self, data_uri: Optional[str]) -> Optional[np.ndarray]:
        if not data_uri:
            return None

        cached_uri, cached = self._illustration
        if cached_uri == data_uri:
            return cached

        try:
            decoded = decode_data_uri(data_uri)
        except Exception as e:
            print(f"[ERROR] Could not decode illustration: {e}")
            decoded = None
        self._illustration = (data_uri, decoded)
        return decoded


class HandToHeartApp:
    """
    Main application class.

    Owns the camera, hand guide, session controller and renderer, and runs
    the OpenCV event loop. The camera is only open while a sign is being
    practiced.
    """

    WINDOW_NAME = "Hand to Heart"

    KEY_ENTER = (10, 13)
    KEY_BACKSPACE = 8
    KEY_ESCAPE = 27
    KEY_SPACE = 32

    def __init__(
        self,
        config: AppConfig,
        recognizer: Optional[RecognitionClient] = None,
        composer: Optional[CompositionClient] = None,
        camera: Optional[Camera] = None
    ):
        """
        Args:
            config: Application config
            recognizer: Override the gesture verifier
            composer: Override the poem/illustration generator
            camera: Override the camera
        """
        self.config = config

        client = None
        if not config.use_mock and config.api_key:
            client = create_genai_client(config)

        if config.use_mock:
            recognizer = recognizer or MockRecognitionClient()
            composer = composer or MockCompositionClient(config)
        self.recognizer = recognizer or RecognitionClient(config, client)
        self.composer = composer or CompositionClient(config, client)

        self.scheduler = Scheduler()
        self.controller = SessionController(
            self.recognizer,
            self.composer,
            self.scheduler,
            ThreadRunner(self.scheduler),
            success_delay=config.success_delay
        )

        self.camera = camera or Camera(
            camera_id=config.camera_id,
            width=config.frame_width,
            height=config.frame_height,
            jpeg_quality=config.jpeg_quality
        )
        self.hand_guide: Optional[HandGuide] = None
        self._camera_mounted = False

        self.renderer = ScreenRenderer(font_path=config.font_path)

        self._styles = StylePresets.get_all_names()
        self.composer.set_style(config.illustration_style)
        self._notice = ""
        self._running = False

    # ------------------------------------------------------------------
    # Input

    def _handle_keyboard(self, key: int) -> bool:
        """
        Handle keyboard input for the current phase.

        Returns:
            False if should quit, True otherwise
        """
        if key == 255 or key < 0:
            return True

        if key in (ord('q'), self.KEY_ESCAPE):
            return False

        phase = self.controller.phase
        self._notice = ""

        if phase == Phase.INTRO:
            if key in self.KEY_ENTER or key == self.KEY_SPACE:
                self.controller.start()

        elif phase == Phase.SELECTION:
            if ord('0') <= key <= ord('9'):
                idx = (key - ord('1')) % 10
                if idx < len(self.controller.catalog):
                    self.controller.choose(self.controller.catalog[idx])
            elif key == ord('f') or key in self.KEY_ENTER:
                self.controller.finish()
            elif key == ord('s'):
                self._cycle_style()

        elif phase == Phase.PRACTICE:
            if key in (self.KEY_SPACE, ord('v')):
                self._verify()
            elif key in (ord('b'), self.KEY_BACKSPACE):
                self.controller.back()

        elif phase == Phase.RESULT:
            if key == ord('r') or key in self.KEY_ENTER:
                self.controller.restart()

        return True

    def _verify(self):
        """Snapshot the camera and hand it to the controller."""
        if not self.controller.can_verify():
            return
        try:
            image = self.camera.capture_frame()
        except CameraUnavailableError as e:
            self._notice = str(e)
            return
        self.controller.verify(image)

    def _cycle_style(self):
        current = self.composer.style
        idx = self._styles.index(current) if current in self._styles else -1
        style = self._styles[(idx + 1) % len(self._styles)]
        self.composer.set_style(style)
        self._notice = f"Illustration style: {StylePresets.get_preset(style)['title']}"

    # ------------------------------------------------------------------
    # Camera lifecycle

    def _sync_camera(self):
        """Open the camera when practice starts, release it when it ends."""
        practicing = self.controller.phase == Phase.PRACTICE

        if practicing and not self._camera_mounted:
            self._camera_mounted = True
            self.camera.start()
            if self.hand_guide is None and self.config.hand_guide:
                self.hand_guide = create_hand_guide(True)
                if self.hand_guide is None:
                    self.config.hand_guide = False

        elif not practicing and self._camera_mounted:
            self._camera_mounted = False
            self.camera.stop()

    def _camera_context(self) -> RenderContext:
        context = RenderContext(notice=self._notice, style=self.composer.style)
        if self.controller.phase != Phase.PRACTICE:
            return context

        context.camera_error = self.camera.error
        frame = self.camera.get_display_frame()
        if frame is not None and self.hand_guide is not None:
            frame = draw_hand_outlines(frame, self.hand_guide.detect(frame))
        context.camera_frame = frame
        return context

    # ------------------------------------------------------------------
    # Main loop

    def render(self) -> np.ndarray:
        """Render the current screen."""
        return self.renderer.render(self.controller.view(), self._camera_context())

    def run(self):
        """Run the main application loop."""
        print("\n" + "=" * 60)
        print("  Hand to Heart - Learn signs, weave them into art")
        print("=" * 60)
        print("\nKeyboard:")
        print("  [ENTER] Begin / weave story / start over")
        print("  [1-9,0] Choose a sign | [S] Cycle illustration style")
        print("  [SPACE] Verify gesture | [B] Back to selection")
        print("  [Q] Quit")
        print("\n" + "=" * 60)

        self._running = True
        cv2.namedWindow(self.WINDOW_NAME, cv2.WINDOW_NORMAL)
        cv2.resizeWindow(self.WINDOW_NAME, self.renderer.width, self.renderer.height)

        try:
            while self._running:
                self.scheduler.run_pending()
                self._sync_camera()

                cv2.imshow(self.WINDOW_NAME, self.render())

                key = cv2.waitKey(15) & 0xFF
                if not self._handle_keyboard(key):
                    break

        except KeyboardInterrupt:
            print("\n[INFO] Interrupted by user")

        finally:
            self._running = False
            self.controller.shutdown()
            self.scheduler.cancel_all()
            self.camera.stop()
            if self.hand_guide is not None:
                self.hand_guide.release()
            cv2.destroyAllWindows()
            print("\n[INFO] Application closed")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Hand to Heart - learn sign language, weave it into art")
    parser.add_argument('--camera', type=int, default=None, help='Camera device index')
    parser.add_argument('--mock', action='store_true', help='Run offline with mock models (no API needed)')
    parser.add_argument('--no-hand-guide', action='store_true', help='Do not draw hand landmarks')
    parser.add_argument('--style', choices=StylePresets.get_all_names(), default=None, help='Illustration style')
    parser.add_argument('--font', default=None, help='TrueType font with Chinese glyphs')
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None):
    """Main entry point."""
    load_dotenv(Path.cwd() / ".env")
    args = parse_args(argv)

    config = AppConfig.from_env(
        camera_id=args.camera,
        illustration_style=args.style,
        font_path=args.font,
        use_mock=args.mock or None,
        hand_guide=False if args.no_hand_guide else None,
    )

    if not config.use_mock and not config.api_key:
        print("\n[NOTE] API_KEY not set. Model calls will fail until it is provided.")
        print("[NOTE] Set API_KEY in your .env file, or run with --mock")

    app = HandToHeartApp(config)
    app.run()


if __name__ == "__main__":
    main()
