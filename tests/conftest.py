import pytest
from PIL import Image

from core.participants import ParticipantDirectory, ParticipantRecord
from core.settings_manager import ENV_OVERRIDES, CertificateSettings


class RecordingSurface:
    """RenderSurface fake that records every call.

    Text width is `len(text) * font_size * char_width`.
    """

    def __init__(self, width=800, height=600, *, char_width=0.6, encoded=b"PNGDATA", save_error=None):
        self.width = width
        self.height = height
        self.char_width = char_width
        self.encoded = encoded
        self.save_error = save_error
        self.ops = []
        self.saved = []

    def clear(self):
        self.ops.append(("clear",))

    def draw_image(self, image, x, y, width, height):
        self.ops.append(("draw_image", image, x, y, width, height))

    def draw_gradient_rect(self, x, y, width, height, start, end):
        self.ops.append(("draw_gradient_rect", x, y, width, height, start, end))

    def draw_stroked_rect(self, x, y, width, height, color, line_width):
        self.ops.append(("draw_stroked_rect", x, y, width, height, color, line_width))

    def measure_text(self, text, font_size):
        return len(text) * font_size * self.char_width

    def draw_text(self, text, x, y, font_size, color):
        self.ops.append(("draw_text", text, x, y, font_size, color))

    def encode(self):
        return self.encoded

    def trigger_save(self, data, filename):
        if self.save_error is not None:
            raise self.save_error
        self.saved.append((filename, data))

    def op_names(self):
        return [op[0] for op in self.ops]


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings():
    return CertificateSettings.from_mapping({"pacing_delay": 0.0})


@pytest.fixture
def surface():
    return RecordingSurface()


@pytest.fixture
def records():
    return [
        ParticipantRecord("001", "Jane Doe", "5K"),
        ParticipantRecord("AB1", "Alex Brown", "10K"),
        ParticipantRecord("a103", "Aisha Rahman", "Half Marathon"),
    ]


@pytest.fixture
def directory(records):
    return ParticipantDirectory.from_records(records)


@pytest.fixture
def background_image():
    return Image.new("RGBA", (40, 30), (10, 20, 30, 255))
