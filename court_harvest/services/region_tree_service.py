"""Region selection through the aciTree checkbox widget on the search form.

Every UI step is best-effort: a failure is logged and the remaining
regions are still processed. Each multi-tier fallback logs which tier
worked so markup changes on the site are easy to diagnose.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from court_harvest.lib.config import Config
from court_harvest.lib.errors import NavigationTimeout
from court_harvest.lib.logging_config import get_logger
from court_harvest.lib.regions import RegionResolver, get_resolver
from court_harvest.lib.waits import settle, wait_for
from court_harvest.services.browser_session import (
    coordinate_click,
    is_visible,
    js_click,
    safe_click,
)

logger = get_logger()

TREE_TRIGGERS: List[Tuple[str, str]] = [(By.ID, "tree"), (By.CLASS_NAME, "aciTree")]
TREE_PANEL_CLASS = "aciTree"

LINE_XPATH = "./ancestor-or-self::*[contains(concat(' ', normalize-space(@class), ' '), ' aciTreeLine ')][1]"
EXPAND_BUTTON_XPATH = "./ancestor::div[@role='treeitem'][1]//span[@class='aciTreeButton']"
CHECKBOX_XPATH = "./ancestor::div[@role='treeitem'][1]//span[@class='aciTreeCheck']"

CONFIRM_SELECTORS = [
    "button.btn-primary",
    "button.btn-success",
    "input[type='submit']",
    "button[type='submit']",
]
CONFIRM_BUTTON_TEXTS = ["Применить", "Выбрать", "OK", "Сохранить", "Готово"]


def xpath_literal(value: str) -> str:
    """Quote a string for use inside an XPath expression."""
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    parts = value.split("'")
    return "concat(" + ", \"'\", ".join(f"'{p}'" for p in parts) + ")"


def text_exact_xpath(text: str) -> str:
    return f"//span[@class='aciTreeText' and normalize-space()={xpath_literal(text)}]"


def text_contains_xpath(text: str) -> str:
    return f"//span[@class='aciTreeText' and contains(text(), {xpath_literal(text)})]"


@dataclass
class TreeSelectionResult:
    """What the selector managed to do; used for logging and tests."""

    opened: bool = False
    expanded: List[str] = field(default_factory=list)
    selected: Dict[str, str] = field(default_factory=dict)
    missing: List[str] = field(default_factory=list)
    confirmed_by: Optional[str] = None


class RegionTreeService:
    """Opens the region tree, expands districts and checks target regions."""

    def __init__(
        self,
        resolver: Optional[RegionResolver] = None,
        tree_timeout: Optional[float] = None,
        settle_seconds: Optional[float] = None,
    ):
        self.resolver = resolver or get_resolver()
        self.tree_timeout = Config.get_tree_timeout_seconds() if tree_timeout is None else tree_timeout
        self.settle_seconds = Config.get_settle_seconds() if settle_seconds is None else settle_seconds

    # helpers

    @staticmethod
    def _line_attribute(element, name: str) -> Optional[str]:
        try:
            line = element.find_element(By.XPATH, LINE_XPATH)
            return line.get_attribute(name)
        except Exception:
            return None

    def _open_tree(self, driver) -> bool:
        for by, value in TREE_TRIGGERS:
            found = driver.find_elements(by, value)
            if not found:
                continue
            logger.info(f"[UI_ACTION] Found region tree trigger {by}={value}")
            try:
                safe_click(driver, found[0], label="region tree trigger")
            except Exception as e:
                logger.warning(f"[UI_ACTION] Region tree trigger click failed: {e}")
                continue
            return True
        logger.warning("Region tree trigger not found")
        return False

    def _wait_for_panel(self, driver) -> bool:
        try:
            WebDriverWait(driver, self.tree_timeout).until(
                EC.visibility_of_element_located((By.CLASS_NAME, TREE_PANEL_CLASS))
            )
            logger.info("Region tree loaded")
            return True
        except Exception as e:
            logger.warning(f"Region tree did not become visible: {e}")
            return False

    # districts

    def find_district_node(self, driver, district: str):
        """Locate a district node trying each label variant in turn."""
        for variant in self.resolver.district_variants(district):
            found = driver.find_elements(By.XPATH, text_contains_xpath(variant))
            if found:
                logger.info(f"Found federal district node: {variant}")
                return found[0]
        return None

    def expand_district(self, driver, node, district: str) -> bool:
        """Expand a district node unless it is already expanded."""
        state = self._line_attribute(node, "aria-expanded")
        if state == "true":
            logger.info(f"Federal district {district} already expanded")
            return True

        buttons = node.find_elements(By.XPATH, EXPAND_BUTTON_XPATH)
        if not buttons:
            logger.warning(f"No expand button for federal district {district}")
            return False

        js_click(driver, buttons[0])
        logger.info(f"[UI_ACTION] Expanded federal district {district}")
        try:
            wait_for(
                lambda: self._line_attribute(node, "aria-expanded") == "true",
                timeout=min(self.tree_timeout, 5.0),
                description=f"{district} expanded",
            )
        except NavigationTimeout:
            # some tree builds never flip the attribute; the children still load
            logger.debug(f"aria-expanded not confirmed for {district}")
        settle(self.settle_seconds)
        return True

    # regions

    def find_region_node(self, driver, region: str):
        found = driver.find_elements(By.XPATH, text_exact_xpath(region))
        if not found:
            logger.warning(f"Region {region} not found by exact text, trying partial match")
            found = driver.find_elements(By.XPATH, text_contains_xpath(region))
        return found[0] if found else None

    def _click_strategies(self) -> List[Tuple[str, Callable]]:
        def _checkbox(driver, node) -> bool:
            boxes = node.find_elements(By.XPATH, CHECKBOX_XPATH)
            if not boxes:
                return False
            js_click(driver, boxes[0])
            return True

        def _node(driver, node) -> bool:
            js_click(driver, node)
            return True

        def _coordinates(driver, node) -> bool:
            coordinate_click(driver, node)
            return True

        return [("checkbox", _checkbox), ("node", _node), ("coordinates", _coordinates)]

    def check_region_node(self, driver, node, region: str) -> Optional[str]:
        """Tick a region node; returns the tier that worked or None."""
        for tier, strategy in self._click_strategies():
            try:
                if strategy(driver, node):
                    logger.info(f"[UI_ACTION] Selected region {region} via {tier}")
                    return tier
            except Exception as e:
                logger.warning(f"[UI_ACTION] Selecting region {region} via {tier} failed: {e}")
        logger.error(f"Could not select region {region} by any method")
        return None

    def select_region(self, driver, region: str, result: TreeSelectionResult) -> None:
        node = self.find_region_node(driver, region)
        if node is None:
            logger.warning(f"Region {region} not found in tree")
            result.missing.append(region)
            return

        logger.info(f"Found region node: '{node.text}'")
        if self._line_attribute(node, "aria-checked") == "true":
            logger.info(f"Region {region} already selected")
            result.selected[region] = "already"
            return

        tier = self.check_region_node(driver, node, region)
        if tier:
            result.selected[region] = tier
            settle(self.settle_seconds)
        else:
            result.missing.append(region)

    # confirmation

    def confirm_selection(self, driver) -> str:
        """Close the widget; returns the tier used.

        Order: primary button, text button, outside click plus Escape.
        """
        for selector in CONFIRM_SELECTORS:
            try:
                for button in driver.find_elements(By.CSS_SELECTOR, selector):
                    if is_visible(button):
                        js_click(driver, button)
                        logger.info(f"[UI_ACTION] Confirmed region selection with {selector}")
                        return "button"
            except Exception as e:
                logger.debug(f"Confirm selector {selector} failed: {e}")

        for label in CONFIRM_BUTTON_TEXTS:
            try:
                buttons = driver.find_elements(By.XPATH, f"//button[contains(text(), {xpath_literal(label)})]")
                if buttons:
                    js_click(driver, buttons[0])
                    logger.info(f"[UI_ACTION] Confirmed region selection with button '{label}'")
                    return "text_button"
            except Exception as e:
                logger.debug(f"Confirm button '{label}' failed: {e}")

        tier = "none"
        try:
            body = driver.find_element(By.TAG_NAME, "body")
            body.click()
            logger.info("[UI_ACTION] Closed region tree with an outside click")
            tier = "outside_click"
            body.send_keys(Keys.ESCAPE)
            logger.info("[UI_ACTION] Sent Escape to close region tree")
            tier = "escape"
        except Exception as e:
            logger.warning(f"Could not close region tree: {e}")
        return tier

    # entry point

    def select_regions(self, driver, regions: List[str]) -> TreeSelectionResult:
        """Select `regions` in the tree; never raises."""
        result = TreeSelectionResult()
        if not regions:
            return result
        logger.info(f"Selecting regions: {', '.join(regions)}")

        try:
            if not self._open_tree(driver):
                return result
            if not self._wait_for_panel(driver):
                return result
            result.opened = True

            grouped = self.resolver.group_by_district(regions)
            logger.info(
                "Regions grouped by district: "
                + "; ".join(f"{d}: {len(rs)}" for d, rs in grouped.items())
            )

            for district, members in grouped.items():
                if not members:
                    continue
                node = None
                try:
                    node = self.find_district_node(driver, district)
                    if node is not None and self.expand_district(driver, node, district):
                        result.expanded.append(district)
                except Exception as e:
                    # children may already be rendered; still try each region
                    logger.error(f"Error expanding federal district {district}: {e}")
                if node is None:
                    logger.warning(f"Federal district {district} not found in tree")
                    result.missing.extend(members)
                    continue

                for region in members:
                    try:
                        self.select_region(driver, region, result)
                    except Exception as e:
                        logger.error(f"Error selecting region {region}: {e}")
                        result.missing.append(region)

            result.confirmed_by = self.confirm_selection(driver)
            logger.info("Region selection finished")
        except Exception as e:
            logger.error(f"Region selection failed: {e}")
        return result
