"""
HCT Perceptual Projection

Maps sRGB colors to hue/chroma/tone and back. Hue and chroma come from the
CAM16 color appearance model under standard viewing conditions; tone is CIE
L*. Numeric constants follow the published material-color-utilities values.

Forward conversion is exact and reproducible. The inverse clamps every channel
to [0, 255] and rounds, so an RGB -> HCT -> RGB round-trip is not guaranteed
to be bit-exact for out-of-gamut requests, but a second round-trip always
reproduces the first.
"""

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .utils import argb_from_rgb, rgb_from_argb

SRGB_TO_XYZ = np.array([
    [0.41233895, 0.35762064, 0.18051042],
    [0.2126, 0.7152, 0.0722],
    [0.01932141, 0.11916382, 0.95034478],
])

XYZ_TO_SRGB = np.array([
    [3.2413774792388685, -1.5376652402851851, -0.49885366846268053],
    [-0.9691452513005321, 1.8758853451067872, 0.04156585616912061],
    [0.05562093689691305, -0.20395524564742123, 1.0571799111220335],
])

XYZ_TO_CAM16RGB = np.array([
    [0.401288, 0.650173, -0.051461],
    [-0.250268, 1.204414, 0.045854],
    [-0.002079, 0.048952, 0.953127],
])

CAM16RGB_TO_XYZ = np.array([
    [1.8620678, -1.0112547, 0.14918678],
    [0.38752654, 0.62144744, -0.00897398],
    [-0.0158415, -0.03412294, 1.0499644],
])

WHITE_POINT_D65 = np.array([95.047, 100.0, 108.883])

LAB_EPSILON = 216.0 / 24389.0
LAB_KAPPA = 24389.0 / 27.0

# Bisection over CAM16 J when inverting a tone.
J_UPPER_BOUND = 150.0
J_SOLVER_STEPS = 50


@dataclass(frozen=True)
class PerceptualColor:
    """A color in HCT space: hue in [0, 360), chroma >= 0, tone in [0, 100]."""
    hue: float
    chroma: float
    tone: float


def linearized(rgb_u8) -> np.ndarray:
    """sRGB channel values (0-255) to linear RGB scaled to 0-100."""
    normalized = np.asarray(rgb_u8, dtype=np.float64) / 255.0
    linear = np.where(
        normalized <= 0.040449936,
        normalized / 12.92,
        ((np.maximum(normalized, 0.0) + 0.055) / 1.055) ** 2.4,
    )
    return linear * 100.0


def delinearized(linear) -> np.ndarray:
    """Linear RGB (0-100) to unrounded, unclamped sRGB channel values (0-255)."""
    normalized = np.asarray(linear, dtype=np.float64) / 100.0
    encoded = np.where(
        normalized <= 0.0031308,
        normalized * 12.92,
        1.055 * np.power(np.maximum(normalized, 0.0), 1.0 / 2.4) - 0.055,
    )
    return encoded * 255.0


def _lab_f(t):
    t = np.asarray(t, dtype=np.float64)
    return np.where(t > LAB_EPSILON, np.cbrt(t), (LAB_KAPPA * t + 16.0) / 116.0)


def _lab_invf(ft):
    ft = np.asarray(ft, dtype=np.float64)
    ft3 = ft * ft * ft
    return np.where(ft3 > LAB_EPSILON, ft3, (116.0 * ft - 16.0) / LAB_KAPPA)


def y_from_lstar(lstar):
    """CIE L* to relative luminance Y (0-100)."""
    return 100.0 * _lab_invf((np.asarray(lstar, dtype=np.float64) + 16.0) / 116.0)


def lstar_from_y(y):
    """Relative luminance Y (0-100) to CIE L*."""
    return 116.0 * _lab_f(np.asarray(y, dtype=np.float64) / 100.0) - 16.0


@dataclass(frozen=True)
class ViewingConditions:
    """Precomputed CAM16 viewing-condition parameters."""
    n: float
    aw: float
    nbb: float
    ncb: float
    c: float
    nc: float
    rgb_d: Tuple[float, float, float]
    fl: float
    fl_root: float
    z: float

    @classmethod
    def make(cls, white_point=WHITE_POINT_D65, adapting_luminance: float = None,
             background_lstar: float = 50.0, surround: float = 2.0,
             discounting: bool = False) -> "ViewingConditions":
        """
        Build viewing conditions.

        Args:
            white_point: XYZ of the adopted white
            adapting_luminance: Luminance of the adapting field in cd/m^2;
                defaults to a 200 lux environment over mid gray
            background_lstar: L* of the background
            surround: 0 dark, 1 dim, 2 average
            discounting: Whether the eye fully discounts the illuminant

        Returns:
            ViewingConditions instance
        """
        if adapting_luminance is None:
            adapting_luminance = 200.0 / math.pi * float(y_from_lstar(50.0)) / 100.0
        white_point = np.asarray(white_point, dtype=np.float64)
        background_lstar = max(0.1, background_lstar)

        rgb_w = XYZ_TO_CAM16RGB @ white_point
        f = 0.8 + surround / 10.0
        if f >= 0.9:
            c = 0.59 + (0.69 - 0.59) * ((f - 0.9) * 10.0)
        else:
            c = 0.525 + (0.59 - 0.525) * ((f - 0.8) * 10.0)
        if discounting:
            d = 1.0
        else:
            d = f * (1.0 - (1.0 / 3.6) * math.exp((-adapting_luminance - 42.0) / 92.0))
        d = min(max(d, 0.0), 1.0)
        rgb_d = d * (100.0 / rgb_w) + 1.0 - d

        k = 1.0 / (5.0 * adapting_luminance + 1.0)
        k4 = k ** 4
        k4f = 1.0 - k4
        fl = k4 * adapting_luminance + 0.1 * k4f * k4f * (5.0 * adapting_luminance) ** (1.0 / 3.0)
        n = float(y_from_lstar(background_lstar)) / white_point[1]
        z = 1.48 + math.sqrt(n)
        nbb = 0.725 / n ** 0.2

        factors = (fl * rgb_d * rgb_w / 100.0) ** 0.42
        rgb_a = 400.0 * factors / (factors + 27.13)
        aw = (2.0 * rgb_a[0] + rgb_a[1] + 0.05 * rgb_a[2]) * nbb

        return cls(
            n=n, aw=float(aw), nbb=nbb, ncb=nbb, c=c, nc=f,
            rgb_d=tuple(float(v) for v in rgb_d),
            fl=fl, fl_root=fl ** 0.25, z=z,
        )


DEFAULT_VIEWING_CONDITIONS = ViewingConditions.make()


def cam16_from_xyz(xyz: np.ndarray, vc: ViewingConditions = DEFAULT_VIEWING_CONDITIONS):
    """
    CAM16 hue, chroma and lightness J for an (N, 3) XYZ array.

    Returns:
        Tuple of (hue, chroma, j) arrays
    """
    cam_rgb = np.asarray(xyz, dtype=np.float64) @ XYZ_TO_CAM16RGB.T
    rgb_d = cam_rgb * np.asarray(vc.rgb_d)
    af = (vc.fl * np.abs(rgb_d) / 100.0) ** 0.42
    rgb_a = np.sign(rgb_d) * 400.0 * af / (af + 27.13)
    r_a, g_a, b_a = rgb_a[..., 0], rgb_a[..., 1], rgb_a[..., 2]

    a = (11.0 * r_a - 12.0 * g_a + b_a) / 11.0
    b = (r_a + g_a - 2.0 * b_a) / 9.0
    u = (20.0 * r_a + 20.0 * g_a + 21.0 * b_a) / 20.0
    p2 = (40.0 * r_a + 20.0 * g_a + b_a) / 20.0

    hue = np.degrees(np.arctan2(b, a)) % 360.0
    hue = np.where(hue >= 360.0, hue - 360.0, hue)

    ac = np.maximum(p2 * vc.nbb, 0.0)
    j = 100.0 * (ac / vc.aw) ** (vc.c * vc.z)

    hue_prime = np.where(hue < 20.14, hue + 360.0, hue)
    e_hue = 0.25 * (np.cos(np.radians(hue_prime) + 2.0) + 3.8)
    p1 = 50000.0 / 13.0 * e_hue * vc.nc * vc.ncb
    t = p1 * np.hypot(a, b) / (u + 0.305)
    alpha = t ** 0.9 * (1.64 - 0.29 ** vc.n) ** 0.73
    chroma = alpha * np.sqrt(j / 100.0)
    return hue, chroma, j


def xyz_from_cam16(j, chroma, hue, vc: ViewingConditions = DEFAULT_VIEWING_CONDITIONS) -> np.ndarray:
    """Inverse CAM16: lightness J, chroma and hue arrays to an (N, 3) XYZ array."""
    j = np.asarray(j, dtype=np.float64)
    chroma = np.asarray(chroma, dtype=np.float64)
    hue = np.asarray(hue, dtype=np.float64)

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        safe_j = np.where(j > 0.0, j, 1.0)
        alpha = np.where((chroma == 0.0) | (j <= 0.0), 0.0, chroma / np.sqrt(safe_j / 100.0))
        t = (alpha / (1.64 - 0.29 ** vc.n) ** 0.73) ** (1.0 / 0.9)
        h_rad = np.radians(hue)
        e_hue = 0.25 * (np.cos(h_rad + 2.0) + 3.8)
        ac = vc.aw * (np.maximum(j, 0.0) / 100.0) ** (1.0 / vc.c / vc.z)
        p1 = e_hue * (50000.0 / 13.0) * vc.nc * vc.ncb
        p2 = ac / vc.nbb
        h_sin = np.sin(h_rad)
        h_cos = np.cos(h_rad)

        gamma = 23.0 * (p2 + 0.305) * t / (23.0 * p1 + 11.0 * t * h_cos + 108.0 * t * h_sin)
        a = gamma * h_cos
        b = gamma * h_sin
        rgb_a = np.stack([
            (460.0 * p2 + 451.0 * a + 288.0 * b) / 1403.0,
            (460.0 * p2 - 891.0 * a - 261.0 * b) / 1403.0,
            (460.0 * p2 - 220.0 * a - 6300.0 * b) / 1403.0,
        ], axis=-1)

        magnitude = np.abs(rgb_a)
        base = np.maximum(0.0, 27.13 * magnitude / (400.0 - magnitude))
        rgb_c = np.sign(rgb_a) * (100.0 / vc.fl) * base ** (1.0 / 0.42)
        rgb_f = rgb_c / np.asarray(vc.rgb_d)
        return rgb_f @ CAM16RGB_TO_XYZ.T


def hct_from_rgb_array(rgb_u8: np.ndarray, vc: ViewingConditions = DEFAULT_VIEWING_CONDITIONS):
    """
    Project an (N, 3) sRGB array into HCT.

    Args:
        rgb_u8: 8-bit red, green, blue channels
        vc: Viewing conditions

    Returns:
        Tuple of (hue, chroma, tone) float arrays
    """
    linear = linearized(np.atleast_2d(rgb_u8))
    xyz = linear @ SRGB_TO_XYZ.T
    hue, chroma, _ = cam16_from_xyz(xyz, vc)
    tone = lstar_from_y(xyz[..., 1])
    return hue, chroma, tone


def _solve_j(hue, chroma, tone, vc: ViewingConditions) -> np.ndarray:
    """Find the CAM16 J whose inverse yields the luminance of the requested tone."""
    target_y = y_from_lstar(tone)
    lo = np.zeros_like(target_y)
    hi = np.full_like(target_y, J_UPPER_BOUND)
    for _ in range(J_SOLVER_STEPS):
        mid = (lo + hi) / 2.0
        y = xyz_from_cam16(mid, chroma, hue, vc)[..., 1]
        below = y < target_y
        lo = np.where(below, mid, lo)
        hi = np.where(below, hi, mid)
    return (lo + hi) / 2.0


def rgb_from_hct_array(hue, chroma, tone, vc: ViewingConditions = DEFAULT_VIEWING_CONDITIONS) -> np.ndarray:
    """
    Convert HCT arrays back to sRGB.

    Achromatic or extreme-tone requests map straight to the gray of that tone.
    Channels are clamped to [0, 255] and rounded half up.

    Returns:
        (N, 3) int64 array of red, green, blue
    """
    hue = np.atleast_1d(np.asarray(hue, dtype=np.float64))
    chroma = np.atleast_1d(np.asarray(chroma, dtype=np.float64))
    tone = np.atleast_1d(np.asarray(tone, dtype=np.float64))

    j = _solve_j(hue, chroma, tone, vc)
    xyz = xyz_from_cam16(j, chroma, hue, vc)
    rgb = delinearized(xyz @ XYZ_TO_SRGB.T)

    achromatic = (chroma < 0.0001) | (tone < 0.0001) | (tone > 99.9999)
    gray = delinearized(y_from_lstar(tone))
    rgb = np.where(achromatic[..., None], gray[..., None], rgb)

    rgb = np.nan_to_num(rgb, nan=0.0, posinf=255.0, neginf=0.0)
    return np.clip(np.floor(rgb + 0.5), 0, 255).astype(np.int64)


def hct_from_argb(argb: int) -> PerceptualColor:
    """Project a single packed color into HCT."""
    hue, chroma, tone = hct_from_rgb_array(np.array([rgb_from_argb(argb)]))
    return PerceptualColor(hue=float(hue[0]), chroma=float(chroma[0]), tone=float(tone[0]))


def argb_from_hct(hue: float, chroma: float, tone: float) -> int:
    """Convert a single HCT triple back to a packed, gamut-clamped color."""
    r, g, b = rgb_from_hct_array([hue], [chroma], [tone])[0]
    return argb_from_rgb(int(r), int(g), int(b))
