"""
Core image-buffer functionality for pride_overlay.
This module defines the RGBA8 image buffer representation shared by every other
module, the helpers that validate and convert it, and the ModernGL context used
to upload buffers as display textures.
"""

from typing import Any, Dict, Optional, Tuple

import moderngl
import numpy as np

# Type aliases for cleaner type annotations
NDArray = np.ndarray
ImageBuffer = np.ndarray  # (height, width, 4) uint8, row-major RGBA
FlagBuffer = np.ndarray  # same layout as ImageBuffer
ShaderSource = str
UniformDict = Dict[str, Any]

CHANNELS = 4

# Default vertex shader that maps texture coordinates from the quad to the fragment shader
DEFAULT_VERTEX_SHADER = """
#version 330
in vec2 in_position;
in vec2 in_texcoord;
out vec2 v_texcoord;
void main() {
    gl_Position = vec4(in_position, 0.0, 1.0);
    v_texcoord = in_texcoord;
}
"""

# Default fragment shader that simply samples from the input texture
DEFAULT_FRAGMENT_SHADER = """
#version 330
in vec2 v_texcoord;
uniform sampler2D texture0;
out vec4 f_color;
void main() {
    f_color = texture(texture0, v_texcoord);
}
"""

# Full screen quad: position (x, y), texture coordinates (u, v)
QUAD_VERTICES = np.array(
    [
        -1.0, -1.0, 0.0, 0.0,  # bottom-left
        1.0, -1.0, 1.0, 0.0,  # bottom-right
        -1.0, 1.0, 0.0, 1.0,  # top-left
        1.0, 1.0, 1.0, 1.0,  # top-right
    ],
    dtype=np.float32,
)


def validate_rgba(img: NDArray) -> None:
    """
    Validates that an image is an RGBA8 buffer (3D, 4 channels, uint8).

    Args:
        img: Input image as numpy ndarray

    Raises:
        ValueError: If the image is not an RGBA8 buffer
    """
    if not isinstance(img, np.ndarray):
        raise ValueError(f"Image must be a numpy ndarray, got {type(img).__name__}")
    if img.ndim != 3:
        raise ValueError(f"Image must be 3D array with 4 channels, got {img.ndim}D array")
    if img.shape[2] != CHANNELS:
        raise ValueError(f"Image must have 4 channels (RGBA), got {img.shape[2]} channels")
    if img.dtype != np.uint8:
        raise ValueError(f"Image must have dtype uint8, got {img.dtype}")


def get_image_dimensions(img: NDArray) -> Tuple[int, int]:
    """
    Extract the height and width from an image array.

    Args:
        img: Input image as numpy ndarray

    Returns:
        Tuple of (height, width)
    """
    height, width = img.shape[:2]
    return height, width


def image_from_bytes(data: bytes, width: int, height: int) -> ImageBuffer:
    """
    Build an image buffer from flat row-major RGBA bytes.

    Args:
        data: Flat RGBA8 bytes, width * height * 4 long
        width: Image width in pixels
        height: Image height in pixels

    Returns:
        A new writable (height, width, 4) uint8 array

    Raises:
        ValueError: If the dimensions are not positive or the length does not match
    """
    if width < 1 or height < 1:
        raise ValueError(f"Image dimensions must be positive, got {(width, height)}")
    expected = width * height * CHANNELS
    if len(data) != expected:
        raise ValueError(f"Expected {expected} bytes for a {width}x{height} RGBA image, got {len(data)}")
    return np.frombuffer(bytes(data), dtype=np.uint8).reshape(height, width, CHANNELS).copy()


def image_to_bytes(img: ImageBuffer) -> bytes:
    """Return the flat row-major RGBA bytes of an image buffer."""
    validate_rgba(img)
    return np.ascontiguousarray(img).tobytes()


def snapshot(img: ImageBuffer) -> ImageBuffer:
    """
    Take an immutable copy of an image buffer.

    The copy owns its memory and is flagged read-only, so neither the caller
    nor a worker can change it afterwards.
    """
    validate_rgba(img)
    frozen = np.array(img, dtype=np.uint8, copy=True, order="C")
    frozen.setflags(write=False)
    return frozen


class GLContext:
    """
    ModernGL context manager for displaying image buffers.
    Handles creation and management of the OpenGL context, programs, and resources.
    """

    def __init__(self, standalone: bool = True):
        """
        Initialize a new OpenGL context.

        Args:
            standalone: If True, creates a standalone context. If False, attempts to
                      use a shared context (useful within GUI applications).
        """
        self.ctx = moderngl.create_standalone_context() if standalone else moderngl.create_context()
        self.programs = {}

        self.quad_vbo = self.ctx.buffer(QUAD_VERTICES.tobytes())

    def __del__(self):
        """Clean up OpenGL resources when the object is deleted."""
        self.release()

    def release(self):
        """Release all OpenGL resources."""
        for program in getattr(self, "programs", {}).values():
            program.release()
        self.programs = {}

        if getattr(self, "quad_vbo", None) is not None:
            self.quad_vbo.release()
            self.quad_vbo = None

    def create_program(self, vertex_shader: ShaderSource, fragment_shader: ShaderSource) -> moderngl.Program:
        """
        Create a shader program from vertex and fragment shader source code.

        Args:
            vertex_shader: The vertex shader source code as a string
            fragment_shader: The fragment shader source code as a string

        Returns:
            A compiled and linked shader program
        """
        # Use hash as a cache key to avoid recompiling identical programs
        program_key = hash((vertex_shader, fragment_shader))

        if program_key not in self.programs:
            self.programs[program_key] = self.ctx.program(vertex_shader=vertex_shader, fragment_shader=fragment_shader)

        return self.programs[program_key]

    def create_vertex_array(self, program: moderngl.Program) -> moderngl.VertexArray:
        """Create a vertex array object binding the full screen quad to a program."""
        return self.ctx.vertex_array(program, [(self.quad_vbo, "2f 2f", "in_position", "in_texcoord")])

    def create_texture(self, img: ImageBuffer) -> moderngl.Texture:
        """
        Upload an RGBA8 image buffer as an OpenGL texture.

        Args:
            img: Image buffer (HxWx4 uint8)

        Returns:
            An OpenGL texture object

        Raises:
            ValueError: If the image is not an RGBA8 buffer
        """
        validate_rgba(img)
        height, width = get_image_dimensions(img)

        texture = self.ctx.texture((width, height), CHANNELS, np.ascontiguousarray(img).tobytes(), dtype="f1")
        texture.filter = (moderngl.NEAREST, moderngl.NEAREST)
        texture.repeat_x = False
        texture.repeat_y = False
        return texture

    def create_output_texture(self, width: int, height: int) -> moderngl.Texture:
        """Create an empty RGBA8 texture for rendering output."""
        texture = self.ctx.texture((width, height), CHANNELS, dtype="f1")
        texture.filter = (moderngl.NEAREST, moderngl.NEAREST)
        texture.repeat_x = False
        texture.repeat_y = False
        return texture

    def read_texture(self, texture: moderngl.Texture) -> ImageBuffer:
        """
        Read an RGBA8 texture back into a new image buffer.

        Args:
            texture: Texture created by this context

        Returns:
            Image buffer with the texture's contents
        """
        fbo = self.ctx.framebuffer(color_attachments=[texture])
        try:
            data = fbo.read(components=CHANNELS, dtype="f1")
        finally:
            fbo.release()
        return np.frombuffer(data, dtype=np.uint8).reshape(texture.height, texture.width, CHANNELS).copy()

    def process_image(
        self,
        img: ImageBuffer,
        fragment_shader: ShaderSource = DEFAULT_FRAGMENT_SHADER,
        uniforms: Optional[UniformDict] = None,
        additional_textures: Optional[Dict[str, ImageBuffer]] = None,
    ) -> moderngl.Texture:
        """
        Render an image through a fragment shader into a new texture.

        Args:
            img: Input image buffer, bound as texture0
            fragment_shader: Fragment shader source code
            uniforms: Dictionary of uniforms to pass to the shader program
            additional_textures: Additional image buffers to bind, with uniform names as keys

        Returns:
            Output texture owned by the caller
        """
        height, width = get_image_dimensions(img)
        program = self.create_program(DEFAULT_VERTEX_SHADER, fragment_shader)
        input_texture = None
        tex_objects = {}
        output_texture = fbo = vao = None

        try:
            input_texture = self.create_texture(img)
            for name, data in (additional_textures or {}).items():
                tex_objects[name] = self.create_texture(data)
            output_texture = self.create_output_texture(width, height)
            fbo = self.ctx.framebuffer(color_attachments=[output_texture])
            vao = self.create_vertex_array(program)

            input_texture.use(0)
            if "texture0" in program:
                program["texture0"] = 0

            tex_unit = 1
            for name, tex in tex_objects.items():
                if name in program:
                    tex.use(tex_unit)
                    program[name] = tex_unit
                    tex_unit += 1

            for name, value in (uniforms or {}).items():
                if name in program:
                    program[name] = value

            fbo.use()
            self.ctx.clear()
            vao.render(moderngl.TRIANGLE_STRIP)
        except Exception:
            if output_texture is not None:
                output_texture.release()
            raise
        finally:
            for resource in (vao, fbo, input_texture, *tex_objects.values()):
                if resource is not None:
                    resource.release()

        return output_texture
