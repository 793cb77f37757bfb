import os
import sys
import time
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

if _suppress_messages:
    warnings.filterwarnings(
        "ignore",
        message=r"Protobuf gencode version .* is exactly one major version older than the runtime version .*",
        category=UserWarning,
        module="google.protobuf",
    )

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import tensorflow as tf
import numpy as np

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")

# Imports for output
import PIL.Image
import imageio.v2 as imageio

from escapetime import (
    DEFAULT_BOX_SIZES,
    SAMPLERS,
    VARIANTS,
    Colorizer,
    RenderParameters,
    compute_zoom_factors,
    render_frame,
    zoom_sequence,
)

from argparse import ArgumentParser

# Deep zoom target on the real axis, beside the period-3 minibrot.
DEFAULT_CENTER = (-1.7499576837060935, 2.787937065633794e-18)


@dataclass
class OutputConfig:
    modes: tuple[str, ...]
    gif_path: Path | None
    image_path: Path | None
    frame_dir: Path | None
    image_format: str


def parse_box_sizes(text: str) -> tuple[int, ...]:
    """Parse a comma separated list of strictly descending box sizes."""

    parts = [part.strip() for part in text.split(",") if part.strip()]
    if not parts:
        raise ValueError("box sizes must not be empty.")
    try:
        sizes = tuple(int(part) for part in parts)
    except ValueError as exc:
        raise ValueError(f"box sizes must be integers, got '{text}'.") from exc
    if any(later >= earlier for earlier, later in zip(sizes, sizes[1:])):
        raise ValueError("box sizes must be strictly descending.")
    if sizes[-1] < 2:
        raise ValueError("the smallest box size must be at least 2.")
    return sizes


def build_parser():
    parser = ArgumentParser(description='Render escape-time fractal zoom frames with adaptive box subdivision.')

    parser.add_argument('--max-iterations', type=int,
                        dest='max_iterations', help='iteration cap; points that never escape are treated as inside the set',
                        metavar='MAX_ITERATIONS', default=2000)

    parser.add_argument('--width', type=int,
                        dest='width', help='image width in pixels',
                        metavar='WIDTH', default=640)

    parser.add_argument('--height', type=int,
                        dest='height', help='image height in pixels',
                        metavar='HEIGHT', default=360)

    parser.add_argument('--center-re', type=float,
                        dest='center_re', help='real part of the point to zoom into',
                        metavar='CENTER_RE', default=DEFAULT_CENTER[0])

    parser.add_argument('--center-im', type=float,
                        dest='center_im', help='imaginary part of the point to zoom into',
                        metavar='CENTER_IM', default=DEFAULT_CENTER[1])

    parser.add_argument('--zoom', type=float,
                        dest='zoom', help='starting zoom; the window spans 4*zoom vertically, smaller is closer',
                        metavar='ZOOM', default=1.0)

    parser.add_argument('--box-sizes', type=str,
                        dest='box_sizes', help='comma separated, strictly descending box sizes for adaptive sampling',
                        metavar='SIZES', default=','.join(str(size) for size in DEFAULT_BOX_SIZES))

    parser.add_argument('--fractal', choices=VARIANTS, default=VARIANTS[0],
                        help='escape-time family to render.')

    parser.add_argument('--sampler', choices=SAMPLERS, default=SAMPLERS[0],
                        help='"adaptive" samples box borders first; "flat" evaluates every pixel.')

    parser.add_argument('--zoom-factor', type=float,
                        dest='zoom_factor', help='the factor by which to multiply the zoom each frame. Choose < 1 for zoom in, >1 for zoom out',
                        metavar='ZOOM_FACTOR', default=0.95)

    parser.add_argument('--final-zoom', type=float, default=None,
                        help='Overall scale applied by the last frame (e.g., 1e-4 narrows the window by 10000x). If set, overrides --zoom-factor.')

    parser.add_argument('--easing', type=str, default='linear',
                        help='Temporal curve used for --final-zoom: "linear" or "ease" for smooth ease-in-out.')

    parser.add_argument('--frames', type=int,
                        dest='frames', help='number of frames to generate',
                        metavar='FRAMES', default=1)

    parser.add_argument('--mode', dest='modes', action='append', metavar='MODE',
                        help='Output modes to generate. May be repeated. Choices: image, frames, gif.')

    parser.add_argument('--output', dest='output', type=str,
                        help='Destination for single-file outputs (gif/image) or container directory when both are requested.')

    parser.add_argument('--frame-dir', dest='frame_dir', type=str,
                        help='Directory in which to store the frame sequence.')

    parser.add_argument('--colormap', type=str,
                        dest='colormap', help='matplotlib colormap used as the gradient (e.g. "cubehelix", "inferno")',
                        metavar='COLORMAP', default='cubehelix')

    parser.add_argument('--format', type=str,
                        dest='format', help='file format for image-based outputs. Can be any extension supported by Pillow. Default: "png".',
                        metavar='FORMAT', default='png')

    parser.add_argument('--invert', action='store_true', help='Invert the selected colormap.')
    parser.add_argument('--inside-color', type=str, default=None,
                        help='Hex color for points that reach the iteration cap. Defaults to the end of the colormap.')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow diagnostics and sampler statistics.')

    return parser


def validate_options(opt, parser: ArgumentParser) -> tuple[int, ...]:
    if opt.width <= 0 or opt.height <= 0:
        parser.error("--width and --height must be positive.")
    if opt.max_iterations <= 0:
        parser.error("--max-iterations must be positive.")
    if opt.zoom <= 0:
        parser.error("--zoom must be positive.")
    if opt.zoom_factor <= 0:
        parser.error("--zoom-factor must be positive.")
    if opt.frames <= 0:
        parser.error("--frames must be positive.")
    if opt.easing.lower() not in {"linear", "ease"}:
        parser.error("--easing must be 'linear' or 'ease'.")
    try:
        return parse_box_sizes(opt.box_sizes)
    except ValueError as exc:
        parser.error(f"--box-sizes: {exc}")


def resolve_output_config(opt, parser: ArgumentParser) -> OutputConfig:
    valid_modes = {"image", "frames", "gif"}
    modes = list(opt.modes or [])
    if not modes:
        modes = ["frames"] if opt.frames > 1 else ["image"]

    normalized_modes: list[str] = []
    for mode in modes:
        if mode not in valid_modes:
            parser.error(f"Unknown output mode '{mode}'. Valid choices: {', '.join(sorted(valid_modes))}.")
        if mode not in normalized_modes:
            normalized_modes.append(mode)

    modes_tuple = tuple(normalized_modes)
    modes_set = set(modes_tuple)

    frame_dir_path: Path | None = None
    if "frames" in modes_set:
        frame_dir_path = Path(opt.frame_dir or "./frames").expanduser().resolve()
    elif opt.frame_dir is not None:
        parser.error("--frame-dir is only valid with the frames mode.")

    image_format = (opt.format or "png").lower().lstrip(".") or "png"

    file_modes = [mode for mode in modes_tuple if mode in {"gif", "image"}]
    gif_path: Path | None = None
    image_path: Path | None = None

    if not file_modes:
        if opt.output:
            parser.error("--output is only valid when gif or image modes are requested.")
    elif len(file_modes) == 1:
        mode = file_modes[0]
        if opt.output:
            output_path = Path(opt.output).expanduser()
            if output_path.exists() and output_path.is_dir():
                parser.error("--output must point to a file, not a directory, when a single file mode is active.")
            expected_suffix = ".gif" if mode == "gif" else f".{image_format}"
            if output_path.suffix:
                if output_path.suffix.lower() != expected_suffix.lower():
                    parser.error(f"--output extension {output_path.suffix} does not match {expected_suffix}.")
            else:
                output_path = output_path.with_suffix(expected_suffix)
            if mode == "gif":
                gif_path = output_path.resolve()
            else:
                image_path = output_path.resolve()
        elif mode == "gif":
            gif_path = Path("movie.gif").resolve()
        else:
            image_path = Path(f"frame_final.{image_format}").resolve()
    else:
        base_dir = Path(opt.output).expanduser() if opt.output else Path.cwd()
        if base_dir.exists() and not base_dir.is_dir():
            parser.error("--output must be a directory when both gif and image modes are active.")
        gif_path = (base_dir / "movie.gif").resolve()
        image_path = (base_dir / f"frame_final.{image_format}").resolve()

    return OutputConfig(
        modes=modes_tuple,
        gif_path=gif_path,
        image_path=image_path,
        frame_dir=frame_dir_path,
        image_format=image_format,
    )


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def _for_format(image: PIL.Image.Image, image_format: str) -> PIL.Image.Image:
    if _pil_format_name(image_format) in {"JPEG", "BMP"}:
        return image.convert("RGB")
    return image


def write_single_image(image: PIL.Image.Image, output_path: Path, image_format: str) -> None:
    """Write a single image to ``output_path`` using the provided format."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    _for_format(image, image_format).save(str(output_path), format=_pil_format_name(image_format))


def write_frame_sequence(image: PIL.Image.Image, frame_dir: Path, index: int, digits: int, image_format: str) -> Path:
    """Persist a frame in a numbered sequence inside ``frame_dir``."""

    frame_path = frame_dir / f"frame{index:0{digits}d}.{image_format}"
    frame_dir.mkdir(parents=True, exist_ok=True)
    _for_format(image, image_format).save(str(frame_path), format=_pil_format_name(image_format))
    return frame_path


def write_gif(writer: Any, frame_array: np.ndarray) -> None:
    """Append ``frame_array`` to an active GIF writer."""

    writer.append_data(frame_array[..., :3])


@dataclass
class OutputWriters:
    config: OutputConfig
    frame_digits: int

    def __post_init__(self) -> None:
        self._gif_writer = None
        if "gif" in self.config.modes and self.config.gif_path is not None:
            self.config.gif_path.parent.mkdir(parents=True, exist_ok=True)
            self._gif_writer = imageio.get_writer(str(self.config.gif_path), mode='I', duration=0.1, loop=0)

    def write_frame(self, frame_index: int, image: PIL.Image.Image, frame_array: np.ndarray) -> None:
        if self._gif_writer is not None:
            write_gif(self._gif_writer, frame_array)
        if "frames" in self.config.modes and self.config.frame_dir is not None:
            path = write_frame_sequence(image, self.config.frame_dir, frame_index, self.frame_digits,
                                        self.config.image_format)
            log("Saved %s" % path)

    def finalize(self, final_image: PIL.Image.Image | None) -> None:
        if "image" in self.config.modes and final_image is not None and self.config.image_path is not None:
            write_single_image(final_image, self.config.image_path, self.config.image_format)
            log("Saved %s" % self.config.image_path)

    def close(self) -> None:
        if self._gif_writer is not None:
            self._gif_writer.close()
            self._gif_writer = None


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    box_sizes = validate_options(opt, parser)
    output_config = resolve_output_config(opt, parser)

    global VERBOSE
    VERBOSE = bool(opt.verbose)

    log("TensorFlow version: %s" % tf.__version__)

    try:
        colorizer = Colorizer(opt.colormap, invert=bool(opt.invert))
    except KeyError:
        parser.error(f"Unknown colormap '{opt.colormap}'.")

    if opt.inside_color is not None:
        try:
            colorizer = Colorizer(opt.colormap, invert=bool(opt.invert), inside_color=opt.inside_color)
        except ValueError:
            print(f"Invalid inside_color '{opt.inside_color}', using the colormap's end color.")

    initial_params = RenderParameters(
        width=opt.width,
        height=opt.height,
        center_re=opt.center_re,
        center_im=opt.center_im,
        zoom=opt.zoom,
        max_iterations=opt.max_iterations,
        box_sizes=box_sizes,
        variant=opt.fractal,
    )

    per_frame_factors = compute_zoom_factors(
        opt.frames,
        opt.zoom_factor,
        final_zoom=opt.final_zoom,
        easing=opt.easing,
    )

    frame_digits = max(3, len(str(max(opt.frames - 1, 0))))
    writers = OutputWriters(output_config, frame_digits=frame_digits)

    final_image: PIL.Image.Image | None = None
    start = time.perf_counter()

    try:
        for i, params in enumerate(zoom_sequence(initial_params, per_frame_factors)):
            print("frame {0} out of {1}".format(i, opt.frames), end='\r')
            result = render_frame(params, sampler=opt.sampler, colorizer=colorizer)
            log("Frame %d: zoom %.6g, %s" % (i, params.zoom, result.stats.summary()))

            frame_array = result.canvas.rgba
            image = PIL.Image.fromarray(frame_array)
            writers.write_frame(i, image, frame_array)
            final_image = image
            log("Time elapsed: %.2fs" % (time.perf_counter() - start))
    finally:
        writers.close()

    writers.finalize(final_image)
    print()


if __name__ == '__main__':
    main()
