"""
Numba-compiled kernels for the per-site dLLB moment equations.

The kernels work on raw float64 arrays: spin (3,), sigma (3, 3), omega (3,).
They are compiled with ``nogil=True`` so that the per-site sweep of
DLLBSolver runs in parallel threads.
"""

import numpy as np
from numba import njit
from typing import Tuple


@njit(nogil=True)
def _cross(a, b):
    out = np.empty(3)
    out[0] = a[1] * b[2] - a[2] * b[1]
    out[1] = a[2] * b[0] - a[0] * b[2]
    out[2] = a[0] * b[1] - a[1] * b[0]
    return out


@njit(nogil=True)
def _cross_columns(a, m):
    """a × M applied to each column of M."""
    out = np.empty((3, 3))
    for j in range(3):
        out[0, j] = a[1] * m[2, j] - a[2] * m[1, j]
        out[1, j] = a[2] * m[0, j] - a[0] * m[2, j]
        out[2, j] = a[0] * m[1, j] - a[1] * m[0, j]
    return out


@njit(nogil=True)
def _outer(a, b):
    out = np.empty((3, 3))
    for i in range(3):
        for j in range(3):
            out[i, j] = a[i] * b[j]
    return out


@njit(nogil=True)
def _transpose(m):
    out = np.empty((3, 3))
    for i in range(3):
        for j in range(3):
            out[i, j] = m[j, i]
    return out


@njit(nogil=True)
def _matmul(a, b):
    out = np.zeros((3, 3))
    for i in range(3):
        for j in range(3):
            acc = 0.0
            for k in range(3):
                acc += a[i, k] * b[k, j]
            out[i, j] = acc
    return out


@njit(nogil=True)
def _matvec(m, v):
    out = np.zeros(3)
    for i in range(3):
        out[i] = m[i, 0] * v[0] + m[i, 1] * v[1] + m[i, 2] * v[2]
    return out


@njit(nogil=True)
def _trace(m):
    return m[0, 0] + m[1, 1] + m[2, 2]


@njit(nogil=True)
def _dllb(spin, sigma, omega, alpha, d, precession):
    c = 1.0 / (1.0 + alpha * alpha)
    tr_sigma = _trace(sigma)
    sigma_t = _transpose(sigma)
    ws = _outer(omega, spin)
    ss = _outer(spin, spin)

    # first moment
    ds = alpha * (tr_sigma * omega - _matvec(sigma_t, omega)) - 2.0 * d * c * spin
    if precession:
        ds = ds + _cross(omega, spin)
    ds = c * ds

    # second moment
    a1 = tr_sigma * ws - _matmul(sigma_t, ws)
    a1 = a1 + _matmul(ws, sigma_t) - _trace(ws) * sigma_t
    a1 = a1 + _matmul(ws - _transpose(ws), sigma_t)
    a1 = a1 - 2.0 * (_trace(ss) * ws - _matmul(_transpose(ss), ws))
    m1 = alpha * a1
    if precession:
        m1 = m1 + _cross_columns(omega, sigma_t)
    m2 = 2.0 * tr_sigma * np.eye(3) - 3.0 * (sigma + sigma_t)
    dsigma = c * (m1 + _transpose(m1) + d * c * m2)

    return ds, dsigma


@njit(nogil=True)
def dllb_rhs(spin, sigma, omega, alpha, d):
    """
    Right-hand side of the dLLB equations for one site.

    Args:
        spin: First moment <S>, shape (3,)
        sigma: Second moment <S⊗S>, shape (3, 3)
        omega: Local pulsation vector, shape (3,)
        alpha: Damping parameter
        d: Diffusion rate γ·(α/(g·μ_B))·coef

    Returns:
        Tuple (dS/dt, dΣ/dt)
    """
    return _dllb(spin, sigma, omega, alpha, d, True)


@njit(nogil=True)
def dllb_euler_step(spin, sigma, omega, alpha, d, dt):
    ds, dsigma = _dllb(spin, sigma, omega, alpha, d, True)
    return spin + dt * ds, sigma + dt * dsigma


@njit(nogil=True)
def dllb_rk4_step(spin, sigma, omega, alpha, d, dt):
    k1s, k1m = _dllb(spin, sigma, omega, alpha, d, True)
    k2s, k2m = _dllb(spin + 0.5 * dt * k1s, sigma + 0.5 * dt * k1m, omega, alpha, d, True)
    k3s, k3m = _dllb(spin + 0.5 * dt * k2s, sigma + 0.5 * dt * k2m, omega, alpha, d, True)
    k4s, k4m = _dllb(spin + dt * k3s, sigma + dt * k3m, omega, alpha, d, True)
    new_spin = spin + (dt / 6.0) * (k1s + 2.0 * k2s + 2.0 * k3s + k4s)
    new_sigma = sigma + (dt / 6.0) * (k1m + 2.0 * k2m + 2.0 * k3m + k4m)
    return new_spin, new_sigma


@njit(nogil=True)
def precession_rotation(omega, alpha, dt):
    """
    Rotation generated by the conservative part c·ω× over a step dt.

    Rodrigues formula about ω/|ω| by the angle c·|ω|·dt; identity for ω = 0.
    """
    c = 1.0 / (1.0 + alpha * alpha)
    w = np.sqrt(omega[0] * omega[0] + omega[1] * omega[1] + omega[2] * omega[2])
    rotation = np.eye(3)
    if w == 0.0:
        return rotation
    n = omega / w
    theta = c * w * dt
    k = np.zeros((3, 3))
    k[0, 1] = -n[2]
    k[0, 2] = n[1]
    k[1, 0] = n[2]
    k[1, 2] = -n[0]
    k[2, 0] = -n[1]
    k[2, 1] = n[0]
    return rotation + np.sin(theta) * k + (1.0 - np.cos(theta)) * _matmul(k, k)


@njit(nogil=True)
def _dissipation_midpoint(spin, sigma, omega, alpha, d, dt):
    k1s, k1m = _dllb(spin, sigma, omega, alpha, d, False)
    k2s, k2m = _dllb(spin + 0.5 * dt * k1s, sigma + 0.5 * dt * k1m, omega, alpha, d, False)
    return spin + dt * k2s, sigma + dt * k2m


@njit(nogil=True)
def dllb_symplectic_step(spin, sigma, omega, alpha, d, dt):
    """
    Strang splitting: half dissipative step, exact precession, half dissipative step.

    The precession flow is applied as S -> R S and Σ -> R Σ Rᵀ, so without
    dissipation the spin length and the spectrum of Σ are kept to round-off.
    """
    half_spin, half_sigma = _dissipation_midpoint(spin, sigma, omega, alpha, d, 0.5 * dt)
    rotation = precession_rotation(omega, alpha, dt)
    rotated_spin = _matvec(rotation, half_spin)
    rotated_sigma = _matmul(_matmul(rotation, half_sigma), _transpose(rotation))
    return _dissipation_midpoint(rotated_spin, rotated_sigma, omega, alpha, d, 0.5 * dt)


def as_kernel_arrays(*arrays) -> Tuple[np.ndarray, ...]:
    """Contiguous float64 arrays suitable for the compiled kernels."""
    return tuple(np.ascontiguousarray(a, dtype=np.float64) for a in arrays)
