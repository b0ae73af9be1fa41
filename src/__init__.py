"""
Disaster funding dashboard package.

Modules:
- config: paths, region lookup tables, palette, national average grants, logging setup.
- base_etl: load the disaster CSV, normalize funding fields, extract CDBG-DR grantees, load district data.
- filters: FilterCriteria and the date / region / type / funding predicates, table sorting.
- aggregation: per-region rollups for the map, monthly series, funding by source.
- thresholds: choropleth break points (proportional, quantile, Jenks) and colour mapping.
- fact_sheet: per-event and per-region statistics for the fact sheet.
- geo: join state polygons to region funding.
- exports_csv: filtered-view CSV and region rollup.
- exports_pdf: single-page PDF fact sheet.
"""
