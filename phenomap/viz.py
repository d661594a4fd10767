# region Imports
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.patches import Patch
from matplotlib.lines import Line2D
from PIL import Image
import io
# endregion

# region Visualization Function
def show_overlay_preview(
    overlay,
    points=None,
    title="Overlay preview",
    show=True,
):
    """
    Render a decoded overlay at its geographic extent, optionally with sampled
    (lat, lng) points on top. Works from the live pixel buffer or, for cached
    overlays whose pixels were released, from the PNG.
    """
    # region Base Image
    pixels = overlay.pixels
    if pixels is None:
        pixels = np.asarray(Image.open(io.BytesIO(overlay.png)).convert("RGBA"))
    # endregion

    fig, ax = plt.subplots(figsize=(8, 8))
    ax.imshow(pixels, origin="upper", extent=overlay.bounds.extent, interpolation="nearest")

    # region Points Overlay
    if points:
        lats, lngs = zip(*points)
        ax.scatter(lngs, lats, s=12, edgecolors="black", facecolors="yellow", zorder=3)
    # endregion

    # region Legend / Layout
    legend_elements = [
        Patch(facecolor="white", edgecolor="black", label="Water / NoData"),
        Line2D([0], [0], marker="o", color="w", label="Sampled point",
               markerfacecolor="yellow", markeredgecolor="black", markersize=7),
    ]
    ax.legend(handles=legend_elements, loc="lower right", fontsize=8, framealpha=0.85)
    ax.set_title(title)
    ax.set_xlabel("Longitude")
    ax.set_ylabel("Latitude")
    plt.tight_layout()
    if show:
        plt.show()
    return fig
    # endregion
# endregion

# region CLI
def main(argv=None):
    import argparse
    from phenomap.decoder import decode_overlay_sync
    from phenomap.models import Rectangle
    from phenomap.sampler import sample_shape

    parser = argparse.ArgumentParser(description="Decode a GeoTIFF overlay and plot random points over it.")
    parser.add_argument("source", help="GeoTIFF path or http(s) URL")
    parser.add_argument("--count", type=int, default=200)
    args = parser.parse_args(argv)

    overlay = decode_overlay_sync(args.source)
    b = overlay.bounds
    points = sample_shape(Rectangle(ne=(b.max_lat, b.max_lng), sw=(b.min_lat, b.min_lng)), args.count)
    show_overlay_preview(overlay, points, title=args.source)


if __name__ == "__main__":
    main()
# endregion
