"""Install kustomize release binaries into a tool cache and onto PATH."""
