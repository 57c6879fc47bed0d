"""
Image Quality Analyzer Shaders

Shader sources for the two-pass analysis pipeline.
Both passes share the vertex stage and the full-screen quad; only the
fragment stage differs.
"""

from typing import NamedTuple


# Shared vertex shader: clip-space position and texture coordinate pass
# straight through
VERTEX_SHADER = """
#version 330

in vec2 in_position;   // Clip-space quad corner (-1 to 1)
in vec2 in_texcoord;   // Texture coordinate (0 to 1)

out vec2 v_texcoord;

void main() {
    gl_Position = vec4(in_position, 0.0, 1.0);
    v_texcoord = in_texcoord;
}
"""

# Pass 1: rasterize the source texture unmodified (brightness sampling)
PASSTHROUGH_FRAGMENT_SHADER = """
#version 330

in vec2 v_texcoord;
out vec4 f_color;

uniform sampler2D u_texture;

void main() {
    f_color = texture(u_texture, v_texcoord);
}
"""

# Pass 2: 4-neighbor discrete Laplacian of luma, magnitude in every channel
LAPLACIAN_FRAGMENT_SHADER = """
#version 330

in vec2 v_texcoord;
out vec4 f_color;

uniform sampler2D u_texture;
uniform vec2 u_resolution;  // Surface width, height in pixels

const vec3 LUMA = vec3(0.299, 0.587, 0.114);

float luma_at(vec2 coord) {
    return dot(texture(u_texture, coord).rgb, LUMA);
}

void main() {
    vec2 one_pixel = vec2(1.0) / u_resolution;

    float center = luma_at(v_texcoord);
    float up     = luma_at(v_texcoord + vec2(0.0, one_pixel.y));
    float down   = luma_at(v_texcoord - vec2(0.0, one_pixel.y));
    float left   = luma_at(v_texcoord - vec2(one_pixel.x, 0.0));
    float right  = luma_at(v_texcoord + vec2(one_pixel.x, 0.0));

    float laplacian = (up + down + left + right) - 4.0 * center;
    float edge = abs(laplacian);

    f_color = vec4(vec3(edge), 1.0);
}
"""


class ShaderSet(NamedTuple):
    """Sources for the shared vertex stage and both fragment stages"""
    vertex: str
    passthrough_fragment: str
    laplacian_fragment: str


DEFAULT_SHADERS = ShaderSet(
    vertex=VERTEX_SHADER,
    passthrough_fragment=PASSTHROUGH_FRAGMENT_SHADER,
    laplacian_fragment=LAPLACIAN_FRAGMENT_SHADER,
)
