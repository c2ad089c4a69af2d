"""Emergency patch workflow: find the latest release, cut a patch, open MRs."""
