"""
Example usage of pollwright against a live page.

Shows a polling query with fallback branches, a wait on element state and a
component whose child slots re-resolve themselves after the page re-renders.
"""

import asyncio

from playwright.async_api import async_playwright

from pollwright import By, Component, PollConfig, configure_logging, first, many, optional, query, wait_until
from pollwright.drivers import PlaywrightDriver

configure_logging()

PAGE = """
<main>
  <h1>Orders</h1>
  <table id="orders">
    <tbody>
      <tr><td>#1001</td><td><a href="/orders/1001">open</a></td></tr>
      <tr><td>#1002</td><td></td></tr>
    </tbody>
  </table>
  <button id="refresh" disabled>Refresh</button>
</main>
<script>
  setTimeout(() => document.getElementById('refresh').disabled = false, 400);
  setTimeout(() => {
    const body = document.querySelector('#orders tbody');
    body.innerHTML = body.innerHTML;
  }, 600);
</script>
"""


class OrderRow(Component):
    slots = {
        "cells": many(By.tag("td")),
        "link": optional(By.css("a")),
    }


class OrdersTable(Component):
    slots = {
        "rows": many(By.css("tbody tr"), component=OrderRow, allow_empty=True),
        "first_link": first(By.css("a"), description="first order link"),
    }


async def main():
    print("\n" + "=" * 60)
    print("pollwright: query, wait and self-healing components")
    print("=" * 60)

    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(headless=True)
        page = await browser.new_page()
        await page.set_content(PAGE)
        driver = PlaywrightDriver(page)
        poll = PollConfig.with_timeout(5_000, 100)

        heading = await query(driver, By.css("h2.title"), poll=poll).or_(By.tag("h1")).desc("page heading").first()
        print(f"Heading element: {heading.element_id}")

        refresh = await query(driver, By.id("refresh"), poll=poll).first()
        await wait_until(driver, refresh, poll=poll).error("refresh button never enabled").enabled()
        print("Refresh button is enabled")

        table = OrdersTable(driver, await query(driver, By.id("orders"), poll=poll).first())
        rows = await table.get("rows")
        print(f"Rows before re-render: {[row.base.element_id for row in rows]}")

        await asyncio.sleep(0.8)
        rows = await table.get("rows")
        print(f"Rows after re-render:  {[row.base.element_id for row in rows]}")
        link = await table.get_present("first_link")
        print(f"First order link: {link.element_id}")

        await browser.close()


if __name__ == "__main__":
    asyncio.run(main())
