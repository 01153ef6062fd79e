from __future__ import annotations

# App
APP_VERSION = "0.4.0"

# Meshers
DEFAULT_MESHER = "marching_cubes"  # blocky | marching_cubes | surfnet
DEFAULT_SIZE = 64  # cube edge in lattice units
DEFAULT_MC_SMOOTH = True  # blur + gradient normals
DEFAULT_MC_BUFFERED = True  # sliding vertex cache
DEFAULT_SURFNET_SMOOTH = 7  # relaxation passes; 6-7 looks best

# Marching Cubes density grid
MC_TARGET = 0.0  # isosurface threshold for a [-1,1] field
GRID_PAD = 3  # lattice cells sampled beyond each side of the cube
BLUR_WIDTH = 5  # box kernel, must be odd

# Output
U16_VERTEX_LIMIT = 65536  # max vertices addressable by a 16-bit index batch

# Chunks
DEFAULT_CHUNK_RES = 1  # lattice step (voxels are half a unit, so res=1 -> 0.5 units)
VOXEL_WORLD_SIZE = 0.5
MATERIAL_RING_WIDTH = 4  # world units per material band
DEFAULT_MAX_UPLOADS = 2  # meshes drained per poll

# Sources
DEFAULT_SOURCE = "sphere"  # sphere | sine | noise
DEFAULT_SEED = 12345
DEFAULT_SPHERE_RADIUS = 24
DEFAULT_NOISE = "fast"  # fast | simplex
DEFAULT_TERRAIN_AMPLITUDE = 12.0
DEFAULT_TERRAIN_PERIOD = 32.0
