"""
GPU display textures for the overlay preview.
This module uploads blended buffers as ModernGL textures for display, and can
run the linear blend as a fragment shader for a quick approximate preview.
"""

from typing import TYPE_CHECKING, Optional

from .blending import validate_blend_factor, validate_images
from .core import FlagBuffer, GLContext, ImageBuffer

if TYPE_CHECKING:
    import moderngl

# Linear interpolation between the image (texture0) and the flag (texture1)
BLEND_SHADER = """
#version 330

in vec2 v_texcoord;
uniform sampler2D texture0;
uniform sampler2D texture1;
uniform float factor;

out vec4 f_color;

void main() {
    vec4 image_color = texture(texture0, v_texcoord);
    vec4 flag_color = texture(texture1, v_texcoord);

    f_color = mix(image_color, flag_color, factor);
}
"""


class PreviewRenderer:
    """
    Holds the texture currently on display.

    Each call to show() replaces the display texture with a new upload and
    releases the previous one.
    """

    def __init__(self, context: Optional[GLContext] = None):
        """
        Args:
            context: GLContext to render with; a standalone one is created when omitted
        """
        self._owns_context = context is None
        self.context = context if context is not None else GLContext()
        self.texture: Optional["moderngl.Texture"] = None

    def show(self, image: ImageBuffer) -> "moderngl.Texture":
        """Upload an image as the current display texture."""
        texture = self.context.create_texture(image)
        self._replace(texture)
        return texture

    def read(self) -> Optional[ImageBuffer]:
        """Read the current display texture back, or None if nothing is shown."""
        if self.texture is None:
            return None
        return self.context.read_texture(self.texture)

    def blend_preview(self, image: ImageBuffer, flag: FlagBuffer, factor: float) -> "moderngl.Texture":
        """
        Blend on the GPU and show the result.

        The shader rounds to the nearest byte, so the preview can differ by one
        from blend_images(); use blend_images() for the image that gets saved.

        Raises:
            DimensionMismatchError: If the buffers differ in size
            InvalidBlendFactorError: If factor is outside [0.0, 1.0]
        """
        validate_images(image, flag)
        factor = validate_blend_factor(factor)

        texture = self.context.process_image(
            image,
            BLEND_SHADER,
            uniforms={"factor": factor},
            additional_textures={"texture1": flag},
        )
        self._replace(texture)
        return texture

    def release(self) -> None:
        """Release the display texture, and the context if this renderer created it."""
        self._replace(None)
        if self._owns_context:
            self.context.release()

    def _replace(self, texture: Optional["moderngl.Texture"]) -> None:
        if self.texture is not None:
            self.texture.release()
        self.texture = texture
