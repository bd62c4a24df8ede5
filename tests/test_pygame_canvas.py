import pygame
import pytest

from phic_chart.backends.pygame import PygameCanvas
from phic_chart.backends.pygame.canvas import MULTI_HINT_RGB, NOTE_RGB, rgba255
from phic_chart.core import ChartSession
from phic_chart.math.curves import AnimVector
from phic_chart.math.transform import identity
from phic_chart.render.primitives import QuadPrimitive
from phic_chart.types import AnimatedObject, NoteKind, TextureAsset


@pytest.fixture
def surface():
    return pygame.Surface((200, 100))


def test_world_to_screen(surface):
    canvas = PygameCanvas(surface)
    assert canvas.to_screen((-1.0, 1.0)) == (0.0, 0.0)
    assert canvas.to_screen((0.0, 0.0)) == (100.0, 50.0)
    assert canvas.to_screen((1.0, -1.0)) == (200.0, 100.0)


def test_rgba255():
    assert rgba255((1.0, 0.5, 0.0, 2.0)) == (255, 128, 0, 255)


def test_session_draws_line_and_notes(surface, make_chart, note):
    plain = note(9.0, height=0.5)
    plain.object = AnimatedObject(translation=AnimVector.constant(-0.5, 0.0))
    chord = [note(8.0, height=0.5), note(8.0, height=0.5)]
    for n in chord:
        n.object = AnimatedObject(translation=AnimVector.constant(0.5, 0.0))
    chart = make_chart([[plain], chord])

    session = ChartSession(chart)
    session.update(0.0)
    session.render(PygameCanvas(surface, note_size=(0.2, 0.2)))

    # judge line through the middle of the screen
    assert tuple(surface.get_at((100, 50)))[:3] == (0xFE, 0xFF, 0xA9)
    # world y 0.5 is screen row 25
    assert tuple(surface.get_at((50, 25)))[:3] == NOTE_RGB[NoteKind.TAP]
    assert tuple(surface.get_at((150, 25)))[:3] == MULTI_HINT_RGB
    assert tuple(surface.get_at((100, 5)))[:3] == (0, 0, 0)


def test_unknown_primitive(surface):
    with pytest.raises(TypeError):
        PygameCanvas(surface).emit(object())


@pytest.mark.parametrize("flip_y,top", [(True, (255, 0, 0)), (False, (0, 0, 255))])
def test_texture_quad_orientation(surface, flip_y, top):
    img = pygame.Surface((2, 20), pygame.SRCALPHA)
    img.fill((0, 0, 255, 255))
    img.fill((255, 0, 0, 255), pygame.Rect(0, 0, 2, 10))
    quad = QuadPrimitive(
        line_index=0,
        texture_name="stripes.png",
        texture=TextureAsset("stripes.png", 2, 20, img),
        corners=((-1.0, -1.0), (1.0, -1.0), (1.0, 1.0), (-1.0, 1.0)),
        color=(1.0, 1.0, 1.0, 1.0),
        flip_y=flip_y,
        matrix=identity(),
    )
    PygameCanvas(surface).emit(quad)
    assert tuple(surface.get_at((100, 10)))[:3] == top
